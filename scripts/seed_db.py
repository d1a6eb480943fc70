"""Load the demo branches, batches, people and ID counters (database/seed.sql).

The seed is idempotent; counters only move forward. Run init_db.py first.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.school_management.school_management.database.bootstrap import apply_seed_sql, list_tables


def main() -> None:
    load_dotenv(REPO_ROOT / ".env", override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    if "people" not in list_tables(db_config):
        raise SystemExit("schema missing: run scripts/init_db.py first")

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    print(f"seeded {db_config.get('database')} on {db_config.get('host')}:{db_config.get('port', 3306)}")


if __name__ == "__main__":
    main()
