# raffle/conf.py
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# ----------------------------------------------------------------------
# Paths (all under assets/)
# ----------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent.parent
ASSETS_DIR = ROOT_DIR / "assets"

DEFAULT_DB_PATH = ASSETS_DIR / "raffle.db"

# ----------------------------------------------------------------------
# Storage
# ----------------------------------------------------------------------
def sqlite_url(path: Path = DEFAULT_DB_PATH) -> str:
    """Return a SQLAlchemy URL for a local SQLite file, creating its directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


# Unset → in-memory store (data is lost on restart). The bare value "sqlite" means assets/raffle.db
_database_url = os.getenv("RAFFLE_DATABASE_URL") or os.getenv("DATABASE_URL")
DATABASE_URL = sqlite_url() if _database_url == "sqlite" else _database_url

# ----------------------------------------------------------------------
# Recharge billing
# ----------------------------------------------------------------------
# Unset → discounts are evaluated in-process
RECHARGE_API_URL = os.getenv("RECHARGE_API_URL")
RECHARGE_TIMEOUT_S = float(os.getenv("RECHARGE_TIMEOUT_S", "10"))

# Inter-attempt sleep is capped so demos don't block for the full backoff
MAX_SIMULATED_DELAY_MS = int(os.getenv("MAX_SIMULATED_DELAY_MS", "400"))

# ----------------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------------
STAFF_EMAIL = os.getenv("STAFF_EMAIL", "ops@merchant.example")

# ----------------------------------------------------------------------
# Stage batches (label only, nothing is actually delayed)
# ----------------------------------------------------------------------
STAGE_THROTTLE_MS = round(60000 / 5)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    logger.info("Raffle automation – configuration")
    logger.info("Database URL      : %s", DATABASE_URL or "(in-memory)")
    logger.info("Recharge API URL  : %s", RECHARGE_API_URL or "(local evaluator)")
    logger.info("Recharge timeout  : %ss", RECHARGE_TIMEOUT_S)
    logger.info("Max retry delay   : %sms", MAX_SIMULATED_DELAY_MS)
    logger.info("Staff email       : %s", STAFF_EMAIL)
