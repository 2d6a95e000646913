import os

from . import env_flag

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
# No default: TokenIssuer refuses a missing or short key
JWT_SECRET = os.getenv("JWT_SECRET", "")

ACCESS_TOKEN_TTL_SECONDS = int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "900"))
REFRESH_TOKEN_TTL_SECONDS = int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", "604800"))

TWO_FACTOR_ENCRYPTION_KEY = os.getenv("TWO_FACTOR_ENCRYPTION_KEY", "")
TWO_FACTOR_ISSUER = os.getenv("TWO_FACTOR_ISSUER", "AttendanceAPI")

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")
TOKEN_STORE_ENABLED = env_flag("TOKEN_STORE_ENABLED", "1")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_api"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
