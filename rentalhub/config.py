import os

from dotenv import load_dotenv

from .models.store import DEFAULT_DATA_PATH
from .utils.constants import ApprovalMode, DEFAULT_PRICE_TOLERANCE

# Load variables from a local .env file
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    # empty string keeps the store in memory only
    DATA_PATH = os.getenv("RENTALHUB_DATA_PATH", str(DEFAULT_DATA_PATH))
    TIMEZONE = os.getenv("RENTALHUB_TIMEZONE", "UTC")
    APPROVAL_MODE = os.getenv("RENTAL_APPROVAL_MODE", ApprovalMode.DIRECT)
    PRICE_TOLERANCE = float(os.getenv("PRICE_TOLERANCE", DEFAULT_PRICE_TOLERANCE))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
