import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_test_db"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
LOG_FILE = None

LATE_CUTOFFS = "AM=10:00,PM=14:00,EVENING=18:00"
STAFF_PERIOD = "AM"
EXAM_ELIGIBILITY_THRESHOLD = 75

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
