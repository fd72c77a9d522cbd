from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

# --- Configuration ---
NEWSAPI_BASE_URL = "https://newsapi.org/v2"
NEWSDATA_BASE_URL = "https://newsdata.io/api/1/news"
GUARDIAN_BASE_URL = "https://content.guardianapis.com/search"
OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
OPENWEATHER_ICON_URL = "https://openweathermap.org/img/wn/{icon}@2x.png"
HTTP_TIMEOUT = 15

CONFIG_DIR = os.path.expanduser("~/.config/newshub")
CONFIG_PATH = os.path.join(CONFIG_DIR, "config.json")
PREFERENCES_FILE = os.path.join(CONFIG_DIR, "preferences.json")

REQUEST_HEADERS = {
    "User-Agent": "newshub/0.1 (+https://github.com/newshub/newshub)",
    "Accept": "application/json",
}

# Cache lifetimes in seconds, per query kind
CACHE_TTL = {
    "headlines": 15 * 60,
    "category": 15 * 60,
    "personalized": 7.5 * 60,
    "search": 0,
    "guardianSection": 15 * 60,
}

READING_HISTORY_LIMIT = 100
WORDS_PER_MINUTE = 200
MAX_PERSONALIZED_INTERESTS = 5
MAX_RELATED_ARTICLES = 5
TRENDING_TOPICS_LIMIT = 10
DEFAULT_COUNTRY = "us"
WORKER_THREADS = 4

DEFAULT_CATEGORIES = [
    "business",
    "entertainment",
    "environment",
    "food",
    "health",
    "politics",
    "science",
    "sports",
    "technology",
    "top",
    "world",
]

# Categories that mean "no filter" to the providers
UNFILTERED_CATEGORIES = {"top", "general", "all", ""}

# Category filters each provider accepts
NEWSAPI_CATEGORIES = frozenset(
    {"business", "entertainment", "general", "health", "science", "sports", "technology"}
)
NEWSDATA_CATEGORIES = frozenset(
    {
        "business", "crime", "domestic", "education", "entertainment", "environment", "food",
        "health", "lifestyle", "other", "politics", "science", "sports", "technology", "top",
        "tourism", "world",
    }
)

INTEREST_SUGGESTIONS = {
    "business": ["finance", "stocks", "economy", "startups", "investment", "markets"],
    "technology": ["AI", "software", "gadgets", "web development", "mobile", "programming"],
    "health": ["fitness", "nutrition", "medicine", "wellness", "mental health", "covid"],
    "sports": ["cricket", "football", "tennis", "olympics", "basketball", "hockey"],
    "entertainment": ["movies", "music", "celebrities", "television", "streaming", "bollywood"],
    "science": ["space", "research", "environment", "climate", "discoveries", "biology"],
}

# Environment variables take precedence over keys in the config file
API_KEY_ENV = {
    "newsapi": "NEWSAPI_KEY",
    "newsdata": "NEWSDATA_API_KEY",
    "guardian": "GUARDIAN_API_KEY",
    "openweather": "OPENWEATHER_API_KEY",
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "api_keys": {"newsapi": "", "newsdata": "", "guardian": "", "openweather": ""},
    "routes": {
        "headlines": "newsapi",
        "category": "newsdata",
        "search": "newsapi",
        "personalized": "newsapi",
        "guardianSection": "guardian",
    },
    "default_country": DEFAULT_COUNTRY,
    "guardian_sections": ["world", "technology", "science", "culture"],
    "http_timeout": HTTP_TIMEOUT,
    "location": None,
}

# Default UI settings
UI_DEFAULTS = {
    "statusbar_keybindings": "[b {color}]r[/] refresh, [b {color}]b[/] bookmark, [b {color}]s[/] settings",
}

# --- Logging ---
logger = logging.getLogger("newshub")


def setup_logging(debug: bool = False) -> Optional[str]:
    """Configure logging."""
    if not debug:
        logging.basicConfig(level=logging.CRITICAL, handlers=[logging.NullHandler()])
        return None

    ts = datetime.now().strftime("%Y%m%dT%H%M%S")
    pid = os.getpid()
    debug_path = f"/tmp/newshub_debug_{ts}_{pid}.log"

    logging.basicConfig(
        level=logging.DEBUG,
        filename=debug_path,
        filemode="a",
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    logger.debug("Debug logging enabled to %s", debug_path)
    return debug_path


def ensure_config_file_exists(path: str = CONFIG_PATH) -> None:
    """Write the default config file if the user's config file is not found."""
    if os.path.exists(path):
        return
    logger.info("Config file not found at %s, creating default.", path)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
    except OSError as e:
        logger.error("Failed to create default config file: %s", e)


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load the main configuration file, filling in missing top-level keys."""
    ensure_config_file_exists(path)
    config = json.loads(json.dumps(DEFAULT_CONFIG))
    try:
        with open(path, "r") as f:
            config.update(json.load(f))
        logger.info("Loaded config from %s", path)
    except (IOError, json.JSONDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
    return config


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> None:
    """Save the main configuration file."""
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
        logger.info("Saved config to %s", path)
    except IOError as e:
        logger.error("Failed to save config to %s: %s", path, e)


def api_key(config: Dict[str, Any], name: str) -> Optional[str]:
    """Return the API key for a provider, or None if it is not configured."""
    env_name = API_KEY_ENV.get(name)
    if env_name and os.environ.get(env_name):
        return os.environ[env_name]
    return config.get("api_keys", {}).get(name) or None
