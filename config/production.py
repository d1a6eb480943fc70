import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/school_management.log")

LATE_CUTOFFS = os.getenv("LATE_CUTOFFS", "AM=10:00,PM=14:00,EVENING=18:00")
STAFF_PERIOD = os.getenv("STAFF_PERIOD", "AM")
EXAM_ELIGIBILITY_THRESHOLD = int(os.getenv("EXAM_ELIGIBILITY_THRESHOLD", "75"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
