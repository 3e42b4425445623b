"""Configuration constants for the Medina County recorder scraper."""
from __future__ import annotations

import os
from pathlib import Path

DATA_DIR: Path = Path(os.getenv("MEDINA_DATA_DIR", "Output"))
PDF_DIR: Path = DATA_DIR / "PDFs"
CSV_DIR: Path = DATA_DIR / "CSVs"
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
DATASET_FILE: Path = DATA_DIR / "records.jsonl"
STATUS_FILE: Path = DATA_DIR / "status.jsonl"
STATE_FILE: Path = DATA_DIR / "state.json"
INPUT_FILE: Path = Path(os.getenv("MEDINA_INPUT_FILE", "input.json"))
RUNS_DIR: Path = DATA_DIR / "runs"
EXPORTS_DIR: Path = DATA_DIR / "exports"

START_URL: str = os.getenv(
    "MEDINA_START_URL",
    "https://recordersearch.co.medina.oh.us/OHMedina/AvaWeb/#/search",
)
EXPORT_PREFIX: str = "OH-Medina"
DATE_FORMAT: str = "%m/%d/%Y"
EXPORT_DELIMITER: str = "|"
LIST_DELIMITER: str = ";"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


# Browser
HEADLESS: bool = _env_flag("MEDINA_HEADLESS", True)
BROWSER_CHANNEL: str = os.getenv("MEDINA_BROWSER_CHANNEL", "chrome")
BROWSER_ARGS: tuple[str, ...] = (
    "--no-default-browser-check",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-sandbox",
    "--disable-software-rasterizer",
    "--disable-extensions",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-default-apps",
    "--disable-sync",
    "--disable-translate",
    "--mute-audio",
    "--no-first-run",
    "--disable-renderer-backgrounding",
)
LAUNCH_TIMEOUT_MS: int = int(os.getenv("MEDINA_LAUNCH_TIMEOUT_MS", "60000"))
DEFAULT_TIMEOUT_MS: int = int(os.getenv("MEDINA_DEFAULT_TIMEOUT_MS", "30000"))

# Navigation and selector waits (seconds)
NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds("MEDINA_NAV_TIMEOUT_SECONDS", 45)
SELECTOR_TIMEOUT_SECONDS: int = _parse_timeout_seconds("MEDINA_SELECTOR_TIMEOUT_SECONDS", 15)

# Element-level waits stay in milliseconds to match Playwright API expectations.
CLICK_TIMEOUT_MS: int = int(os.getenv("MEDINA_CLICK_TIMEOUT_MS", "5000"))
BACKDROP_TIMEOUT_MS: int = int(os.getenv("MEDINA_BACKDROP_TIMEOUT_MS", "15000"))
DETAIL_TIMEOUT_MS: int = int(os.getenv("MEDINA_DETAIL_TIMEOUT_MS", "10000"))
COLLAPSE_TIMEOUT_MS: int = int(os.getenv("MEDINA_COLLAPSE_TIMEOUT_MS", "5000"))
VIEWER_TIMEOUT_MS: int = int(os.getenv("MEDINA_VIEWER_TIMEOUT_MS", "30000"))
PRINT_DIALOG_TIMEOUT_MS: int = int(os.getenv("MEDINA_PRINT_DIALOG_TIMEOUT_MS", "10000"))
# Rendering the whole document into the print frame can be slow.
PRINT_FRAME_TIMEOUT_MS: int = int(os.getenv("MEDINA_PRINT_FRAME_TIMEOUT_MS", "60000"))
RESULTS_TIMEOUT_MS: int = int(os.getenv("MEDINA_RESULTS_TIMEOUT_MS", "15000"))

# Short sleeps (seconds)
SEARCH_SETTLE_SECONDS: float = float(os.getenv("MEDINA_SEARCH_SETTLE_SECONDS", "3.0"))
VIEWER_SETTLE_SECONDS: float = float(os.getenv("MEDINA_VIEWER_SETTLE_SECONDS", "1.0"))

# Search retry
SEARCH_MAX_ATTEMPTS: int = int(os.getenv("MEDINA_SEARCH_MAX_ATTEMPTS", "3"))
SEARCH_RETRY_BACKOFF_SECONDS: float = float(
    os.getenv("MEDINA_SEARCH_RETRY_BACKOFF_SECONDS", "5")
)

# 0 means every result row is processed.
ROW_LIMIT: int = int(os.getenv("MEDINA_ROW_LIMIT", "0"))
CAPTURE_DOCUMENTS: bool = _env_flag("MEDINA_CAPTURE_DOCUMENTS", True)

# Hosting platform (Apify)
APIFY_API_BASE_URL: str = os.getenv("APIFY_API_BASE_URL", "https://api.apify.com").rstrip("/")
APIFY_REQUEST_TIMEOUT_SECONDS: int = _parse_timeout_seconds("MEDINA_APIFY_TIMEOUT_SECONDS", 60)
APIFY_MAX_RETRIES: int = int(os.getenv("MEDINA_APIFY_MAX_RETRIES", "3"))


def is_hosted() -> bool:
    """Return ``True`` when running inside the hosting platform container."""

    return bool(os.getenv("APIFY_IS_AT_HOME"))


def apify_token() -> str:
    return os.getenv("APIFY_TOKEN", "")


def apify_store_id() -> str:
    return os.getenv("APIFY_DEFAULT_KEY_VALUE_STORE_ID", "")


def apify_dataset_id() -> str:
    return os.getenv("APIFY_DEFAULT_DATASET_ID", "")


def apify_run_id() -> str:
    return os.getenv("APIFY_ACTOR_RUN_ID", "")
