import os

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite+aiosqlite:///./spotix.db"
)

# Paystack
PAYSTACK_SECRET_KEY = os.getenv("PAYSTACK_SECRET_KEY")
PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
# Paystack signs webhooks with the account secret unless a dedicated one is set
PAYSTACK_WEBHOOK_SECRET = os.getenv("PAYSTACK_WEBHOOK_SECRET") or PAYSTACK_SECRET_KEY

# Monnify
MONNIFY_API_KEY = os.getenv("MONNIFY_API_KEY")
MONNIFY_SECRET_KEY = os.getenv("MONNIFY_SECRET_KEY")
MONNIFY_CONTRACT_CODE = os.getenv("MONNIFY_CONTRACT_CODE")
MONNIFY_BASE_URL = os.getenv("MONNIFY_BASE_URL", "https://api.monnify.com")

# Identity provider
AUTH_SECRET_KEY = os.getenv("AUTH_SECRET_KEY")
AUTH_ALGORITHM = os.getenv("AUTH_ALGORITHM", "HS256")

# Mailjet
MJ_APIKEY_PUBLIC = os.getenv("MJ_APIKEY_PUBLIC")
MJ_APIKEY_PRIVATE = os.getenv("MJ_APIKEY_PRIVATE")
MJ_TICKET_TEMPLATE_ID = int(os.getenv("MJ_TICKET_TEMPLATE_ID", "0"))
MAIL_FROM = os.getenv("MAIL_FROM", "tickets@spotix.com.ng")

APP_URL = os.getenv("APP_URL", "http://localhost:3000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Gateway timeouts (seconds)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))
COLD_START_TIMEOUT = float(os.getenv("COLD_START_TIMEOUT", "45"))
COLD_START_WINDOW = float(os.getenv("COLD_START_WINDOW", "60"))

# Polling verifier (seconds)
POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "3"))
POLL_TIMEOUT = float(os.getenv("POLL_TIMEOUT", "30"))

# ₦200 per referred signup, in kobo
REFERRAL_BONUS = int(os.getenv("REFERRAL_BONUS", "20000"))

REQUIRED_SETTINGS = ("PAYSTACK_SECRET_KEY", "AUTH_SECRET_KEY")


def validate_config() -> None:
    """
    Fail fast when a required secret is missing.
    Called from the application startup hook.
    """
    missing = [name for name in REQUIRED_SETTINGS if not globals().get(name)]
    if missing:
        raise RuntimeError(
            "Missing required environment variables: " + ", ".join(missing)
        )
