"""System-wide constants. All magic numbers and strings live here."""

from __future__ import annotations

# ── Tokens ───────────────────────────────────────────────────────
TOKEN_ALGORITHM = "HS256"
TOKEN_LIFETIME_HOURS = 24
BEARER_SCHEME = "Bearer"

# ── Identifiers ──────────────────────────────────────────────────
TENANT_ID_BYTES = 4                 # 8 hex characters
LICENSE_KEY_BYTES = 8               # 16 hex characters
LICENSE_KEY_GROUP_SIZE = 4          # XXXX-XXXX-XXXX-XXXX

# ── Licensing ────────────────────────────────────────────────────
UNLIMITED = -1
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365

# ── Passwords ────────────────────────────────────────────────────
DEFAULT_BCRYPT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72             # bcrypt input limit

# ── User-facing messages ─────────────────────────────────────────
MSG_BAD_REQUEST = "Invalid request."
MSG_UNAUTHORIZED = "Unauthorized."
MSG_FORBIDDEN = "Access denied."
MSG_NOT_FOUND = "Resource not found."
MSG_CONFLICT = "The resource already exists."
MSG_UNPROCESSABLE = "The request could not be processed."
MSG_INTERNAL = "Internal server error."

MSG_INVALID_CREDENTIALS = "Invalid credentials."
MSG_LOGIN_FIELDS_REQUIRED = "Email and password are required."
MSG_ACCOUNT_INACTIVE = "The account is deactivated."
MSG_TENANT_LICENSE_EXPIRED = "The institution's license has expired."
MSG_TENANT_LICENSE_INACTIVE = "The institution's license is deactivated."

MSG_LICENSE_KEY_REQUIRED = "The license key is required."
MSG_LICENSE_KEY_INVALID = "Invalid license key."
MSG_LICENSE_EXPIRED = "The license has expired."
MSG_LICENSE_INACTIVE = "The license is deactivated."
MSG_LICENSE_NO_TENANT = "No institution is associated with this license."
MSG_LICENSE_OK = "Valid license. Sign in with your account."
MSG_LICENSE_OK_NEEDS_SECRETARY = "Valid license. A secretary account must be created."

MSG_PASSWORD_FIELDS_REQUIRED = "The current and new passwords are required."
MSG_PASSWORD_TOO_LONG = "The password must be at most 72 bytes long."
MSG_CANNOT_DELETE_SELF = "You cannot delete your own account."
MSG_USER_LIMIT_REACHED = "The license user limit has been reached."
MSG_STUDENT_LIMIT_REACHED = "The license student limit has been reached."
