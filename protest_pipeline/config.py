"""Runtime configuration.

Values come from the environment (and a `.env` file, if present) with
defaults suitable for local runs.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# override=True to beat shell env vars
load_dotenv(override=True)

CACHE_DIR = Path(__file__).parent.parent / ".cache"

STORE_PATH = Path(os.getenv("PROTEST_STORE_PATH", str(CACHE_DIR / "events.json")))
GEOCODE_CACHE_PATH = Path(os.getenv("GEOCODE_CACHE_PATH", str(CACHE_DIR / "geocode_cache.json")))

USER_AGENT = os.getenv(
    "SCRAPER_USER_AGENT",
    "protest-scraper/1.0 (https://github.com/artem-schander/protest-scraper)",
)
NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")

DEFAULT_DAYS = int(os.getenv("SCRAPE_DAYS", "90"))
DEFAULT_WORKERS = int(os.getenv("SCRAPE_WORKERS", "3"))
