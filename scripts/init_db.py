"""Create the database (if missing) and apply database/schema.sql.

Usage: python scripts/init_db.py [--seed]
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

from src.school_management.school_management.database.bootstrap import apply_schema, apply_seed_sql, list_tables

DATABASE_DIR = REPO_ROOT / "database"


def main(argv: list[str]) -> None:
    load_dotenv(REPO_ROOT / ".env", override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
    tables = list_tables(db_config)
    print(f"schema applied to {target}: {', '.join(tables)}")

    if "--seed" in argv:
        apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
        print(f"demo branches, batches and people loaded into {target}")


if __name__ == "__main__":
    main(sys.argv[1:])
