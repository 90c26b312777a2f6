import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./swimslot.db")

# Frontend base URL for gateway redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8080")

# PhonePe Configuration
PHONEPE_MERCHANT_ID = os.getenv("PHONEPE_MERCHANT_ID", "PGTESTPAYUAT86")
PHONEPE_SALT_INDEX = os.getenv("PHONEPE_SALT_INDEX", "1")
PHONEPE_BASE_URL = os.getenv("PHONEPE_BASE_URL", "https://api-preprod.phonepe.com/apis/pg-sandbox")
PHONEPE_TIMEOUT_SECONDS = float(os.getenv("PHONEPE_TIMEOUT_SECONDS", "15"))
PHONEPE_SALT_KEY = os.getenv("PHONEPE_SALT_KEY")
if not PHONEPE_SALT_KEY:
    import warnings

    warnings.warn(
        "PHONEPE_SALT_KEY not set! Using the public sandbox key - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    PHONEPE_SALT_KEY = "96434309-7796-489d-8924-ab56988a6076"  # noqa: S105 - Sandbox fallback only

# Analysis package pricing
ANALYSIS_PRICE = float(os.getenv("ANALYSIS_PRICE", "1500"))
ANALYSIS_DAYS = int(os.getenv("ANALYSIS_DAYS", "3"))
CURRENCY = os.getenv("CURRENCY", "INR")

# Bookings waiting on the gateway are released after this many minutes
PAYMENT_HOLD_MINUTES = int(os.getenv("PAYMENT_HOLD_MINUTES", "30"))

# Sessions
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", str(60 * 24)))

# One-time passcodes: "notification" issues random codes, "fixed" accepts OTP_FIXED_CODE
OTP_MODE = os.getenv("OTP_MODE", "notification").strip().lower()
OTP_FIXED_CODE = os.getenv("OTP_FIXED_CODE", "8452")
OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", "30"))
OTP_LENGTH = int(os.getenv("OTP_LENGTH", "4"))

# Comma separated emails that are made admins on registration
ADMIN_EMAILS = {
    email.strip().lower() for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()
}
