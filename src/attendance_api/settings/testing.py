import os

SECRET_KEY = "test-secret"
JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"

ACCESS_TOKEN_TTL_SECONDS = 900
REFRESH_TOKEN_TTL_SECONDS = 604800

# base64 of 32 bytes
TWO_FACTOR_ENCRYPTION_KEY = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
TWO_FACTOR_ISSUER = "AttendanceAPI"

STORE_BACKEND = "memory"
TOKEN_STORE_ENABLED = True

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_api_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
