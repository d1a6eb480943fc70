import os

_ENV_MODULES = {
    "development": "config.development",
    "dev": "config.development",
    "production": "config.production",
    "prod": "config.production",
    "testing": "config.testing",
    "test": "config.testing",
}


def get_settings_module() -> str:
    """Settings module for ``APP_ENV``; unknown or unset values fall back to development.

    ``SETTINGS_MODULE`` names a module explicitly (e.g. a site-specific one).
    """
    explicit = os.getenv("SETTINGS_MODULE", "").strip()
    if explicit:
        return explicit
    env = os.getenv("APP_ENV", "development").strip().lower()
    return _ENV_MODULES.get(env, "config.development")
