"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

from decimal import Decimal


# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_COMPANY_NAME_LENGTH = 255
MAX_ROLE_NAME_LENGTH = 100
MAX_PERMISSION_NAME_LENGTH = 100
MAX_PERMISSION_RESOURCE_LENGTH = 100
MAX_PERMISSION_ACTION_LENGTH = 50
MAX_PERMISSION_SCOPE_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 255
MAX_CARRIER_NAME_LENGTH = 100
MAX_STRIPE_ID_LENGTH = 255
MAX_TRIAL_DAYS = 730  # Stripe's limit
CURRENCY_CODE_LENGTH = 3

# Password requirements
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
BCRYPT_ROUNDS = 12

# Pagination defaults
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 32
REFRESH_TOKEN_BYTES = 32
TOKEN_HASH_LENGTH = 64  # SHA-256 hex digest
MAX_USER_AGENT_LENGTH = 512
MAX_IP_ADDRESS_LENGTH = 45

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"

# Money
MONEY_QUANTUM = Decimal("0.01")
PERCENT = Decimal(100)
MONEY_PRECISION = 12
MONEY_SCALE = 4

# Markup rule that applies to every carrier without a dedicated rule
GLOBAL_CARRIER = "*"
