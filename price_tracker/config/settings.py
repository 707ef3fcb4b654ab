# price_tracker/config/settings.py

"""Central configuration for the price tracker."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the price tracker."""

    # --- Data platform ---
    DATA_BACKEND: str = os.getenv("DATA_BACKEND", "local")  # local | remote
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")

    # --- Network ---
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    IMAGE_PROBE_TIMEOUT: int = 5        # Seconds to wait on an image URL
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"

    # --- Realtime ---
    REALTIME_POLL_INTERVAL: float = 5.0  # Remote change poller period (secs)
    RELOAD_DEBOUNCE: float = 0.25        # Coalesce bursts of change events

    # --- Display ---
    CURRENCY_SYMBOL: str = "$"
    CHART_DATE_FORMAT: str = "%b %d"     # e.g. "Jan 05"
    APP_TITLE: str = "PriceTracker AI"
    APP_TAGLINE: str = "Track prices, save money, shop smarter"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    DB_PATH: Path = Path(
        os.getenv("PRICE_TRACKER_DB", str(DATA_DIR / "price_tracker.db"))
    )
    CHARTS_DIR: Path = DATA_DIR / "charts"
    LOGS_DIR: Path = BASE_DIR / "logs"
    LOG_LEVEL: str = os.getenv("PRICE_TRACKER_LOG_LEVEL", "DEBUG").upper()
