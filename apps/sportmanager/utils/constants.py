"""
Constants used across the SportManager backend.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Billing
BILLING_FREE_MONTHS = int(os.getenv("BILLING_FREE_MONTHS", "1"))  # First month(s) after signup are free
BILLING_GRACE_DAYS = int(os.getenv("BILLING_GRACE_DAYS", "10"))  # Days into the month before "overdue"

REGISTRATION_PAYMENT_NOTE = "Registration: inscription + first month"

# Auth
JWT_ISSUER = "sportmanager"
JWT_AUDIENCE = "sportmanager-users"
MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2

# Validation
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
