"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3

DEFAULT_ACCESS_TOKEN_TTL_SECONDS = 15 * 60
DEFAULT_REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
MIN_JWT_SECRET_BYTES = 32

DEFAULT_TWO_FACTOR_ISSUER = "AttendanceAPI"
TOTP_DIGITS = 6
TOTP_INTERVAL_SECONDS = 30
TOTP_VALID_WINDOW = 1

AES_KEY_BYTES = 32
AES_NONCE_BYTES = 12
AES_TAG_BYTES = 16

UNKNOWN_CLIENT = "unknown"
