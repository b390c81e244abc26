"""Application configuration."""

import os
from pathlib import Path
from zoneinfo import ZoneInfo

BASE_DIR = Path(__file__).resolve().parent.parent
DB_PATH = BASE_DIR / "data" / "fund_tracker.db"
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{DB_PATH}"

APP_VERSION = "1.4.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Memory cache TTLs (seconds); the persisted tier never expires
ESTIMATE_CACHE_TTL = float(os.getenv("ESTIMATE_CACHE_TTL", "30"))
NET_VALUE_CACHE_TTL = 60
FUND_LIST_CACHE_TTL = 3600
FUND_INFO_CACHE_TTL = 300
MARKET_INDEX_CACHE_TTL = 3
RANKING_CACHE_TTL = 30
LIVE_POINT_CACHE_TTL = 300

# Upstream request limits
MAX_CONCURRENT_REQUESTS = 5
ESTIMATE_TIMEOUT = 8  # seconds
HISTORY_TIMEOUT = 15
PERIOD_TIMEOUT = 8
RANKING_TIMEOUT = 15
FEE_INFO_TIMEOUT = 10
REMOTE_CONFIG_TIMEOUT = 10

# Polling and trading session (exchange time, no holiday calendar)
MARKET_TZ = ZoneInfo(os.getenv("MARKET_TZ", "Asia/Shanghai"))
ESTIMATE_POLL_INTERVAL = int(os.getenv("ESTIMATE_POLL_INTERVAL", "30"))
TRADING_START = "09:30"
TRADING_END = "15:00"

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

REMOTE_CONFIG_URL = os.getenv(
    "REMOTE_CONFIG_URL",
    "https://xiriovo-max.github.io/fund-app/config/announcement.json",
)

# Ensure data directory exists (only needed for local SQLite, skip if DATABASE_URL is overridden)
if not os.getenv("DATABASE_URL"):
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
