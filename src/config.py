import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Liveness listener
PORT = int(os.getenv("PORT", "12345"))

# Polling
CHECK_PRICES = env_flag("CHECK_PRICES", default=True)
REFRESH_PERIOD_IN_MS = int(os.getenv("REFRESH_PERIOD_IN_MS", "5000"))
REQUEST_TIMEOUT = 10  # Seconds before a listing request is abandoned

# Marketplace
TOKEN_ADDRESS = os.getenv("TOKEN_ADDRESS", "")  # Collection we want to buy from
IMX_PRODUCTION = env_flag("IMX_PRODUCTION")
IMX_API_URL = (
    "https://api.x.immutable.com"
    if IMX_PRODUCTION
    else "https://api.sandbox.x.immutable.com"
)
MARKET_ASSET_URL = "https://market.immutable.com/collections/{collection}/assets/{token_id}"

# Wish-list
ASSETS_FILE = Path(os.getenv("ASSETS_FILE", "assets.json"))
KEY_ATTRIBUTE = os.getenv("KEY_ATTRIBUTE", "name")  # "name" or "image_url"

# Notifications
NOTIFICATION_TIMEOUT = int(os.getenv("NOTIFICATION_TIMEOUT", "15"))

# Debugging
DEBUG = env_flag("DEBUG")
DEBUG_DIR = Path(os.getenv("DEBUG_DIR", "debug"))
LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))

# Token name -> on-chain type and contract address
NATIVE_TOKEN = "ETH"
TOKEN_INFO = {
    "USDC": {
        "type": "ERC20",
        "address": "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
    },
    "GODS": {
        "type": "ERC20",
        "address": "0xccc8cb5229b0ac8069c51fd58367fd1e622afd97",
    },
    NATIVE_TOKEN: {
        "type": "ETH",
        "address": "NOT_USED",
    },
}
