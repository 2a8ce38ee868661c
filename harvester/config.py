import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (parent of harvester/)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


def _int_env(name: str, default: int) -> int:
    """Integer setting; empty or non-numeric values fall back to the default."""
    try:
        value = int(os.getenv(name, ""))
    except ValueError:
        return default
    return value or default


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_list(raw: str | None) -> list[str]:
    """Split a comma separated setting, dropping blanks."""
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def parse_region(raw: str) -> tuple[int, int, int, int]:
    """Parse an ``x,y,width,height`` region string."""
    parts = parse_list(raw)
    if len(parts) != 4:
        raise ValueError(f"Region must be 'x,y,width,height', got {raw!r}")
    x, y, width, height = (int(p) for p in parts)
    if width <= 0 or height <= 0:
        raise ValueError(f"Region must have a positive size, got {raw!r}")
    return x, y, width, height


# Browser session
CHROME_USER_DATA_DIR = os.getenv("CHROME_USER_DATA_DIR") or None
CHROME_PROFILE_DIR = os.getenv("CHROME_PROFILE_DIR") or "Default"
CHROME_EXECUTABLE = os.getenv("CHROME_EXECUTABLE") or None
CHROME_CHANNEL = os.getenv("CHROME_CHANNEL") or None
HEADLESS = _bool_env("HARVEST_HEADLESS")
PROXY_LIST = parse_list(os.getenv("HARVEST_PROXY_LIST"))

# Pacing
TIMEOUT_MS = _int_env("HARVEST_TIMEOUT_MS", 60000)
MIN_DELAY_MS = _int_env("HARVEST_MIN_DELAY_MS", 3000)
MAX_DELAY_MS = _int_env("HARVEST_MAX_DELAY_MS", 7000)
MAX_URLS_PER_HOUR = _int_env("HARVEST_MAX_URLS_PER_HOUR", 10)

# Input / output locations
INPUT_PATH = os.getenv("HARVEST_INPUT") or None
ARCHIVE_DIR = Path(os.getenv("HARVEST_ARCHIVE_DIR") or "archive")
LOG_DIR = Path(os.getenv("HARVEST_LOG_DIR") or "logs")

# Challenge layout (calibrated for one slider widget; recalibrate if it changes)
CHALLENGE_FRAME_NAME = os.getenv("CHALLENGE_FRAME_NAME") or "datadome-captcha-popup"
CHALLENGE_CONTAINER_SELECTOR = os.getenv("CHALLENGE_CONTAINER_SELECTOR") or "#captcha-container"
CHALLENGE_SLIDER_SELECTOR = os.getenv("CHALLENGE_SLIDER_SELECTOR") or ".captcha_slider_knob"
CONFIRM_SELECTORS = parse_list(os.getenv("CHALLENGE_CONFIRM_SELECTORS")) or [
    'button:has-text("Confirm")',
    'button:has-text("Verify")',
    "#btn-interstitial",
]
PUZZLE_PIECE_REGION = parse_region(os.getenv("PUZZLE_PIECE_REGION") or "25,175,60,60")
PUZZLE_BACKGROUND_REGION = parse_region(os.getenv("PUZZLE_BACKGROUND_REGION") or "25,45,280,110")
