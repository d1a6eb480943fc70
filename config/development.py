import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Check-in strictly after the cutoff of its period is Late. Format: PERIOD=HH:MM,...
LATE_CUTOFFS = os.getenv("LATE_CUTOFFS", "AM=10:00,PM=14:00,EVENING=18:00")
# Period whose cutoff applies to staff and teachers.
STAFF_PERIOD = os.getenv("STAFF_PERIOD", "AM")
EXAM_ELIGIBILITY_THRESHOLD = int(os.getenv("EXAM_ELIGIBILITY_THRESHOLD", "75"))

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
