import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_MOCK_DELAY = 2.0

# TrueType fonts with wide Unicode coverage, tried in order when PLANNER_PDF_FONT is unset
FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    "C:/Windows/Fonts/arial.ttf",
)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment (and an optional .env file)."""
    api_key: Optional[str]
    use_mock: bool
    model: str
    base_url: Optional[str]
    request_timeout: float
    mock_delay: float
    pdf_font: Optional[str]

    @property
    def remote_enabled(self) -> bool:
        return bool(self.api_key) and not self.use_mock


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number, using {default}")
        return default
    if value < 0:
        logger.warning(f"Ignoring {name}={raw!r}: must not be negative, using {default}")
        return default
    return value


def find_unicode_font() -> Optional[str]:
    """First installed font from FONT_CANDIDATES, or None (the PDF then uses a core font)."""
    for candidate in FONT_CANDIDATES:
        if os.path.isfile(candidate):
            return candidate
    logger.debug("No Unicode TrueType font found; PDF export will use the Latin-1 core font")
    return None


def load_settings() -> Settings:
    return Settings(
        api_key=_env_str("OPENAI_API_KEY"),
        use_mock=os.getenv("USE_MOCK", "").lower() == "true",
        model=_env_str("PLANNER_MODEL") or DEFAULT_MODEL,
        base_url=_env_str("PLANNER_BASE_URL"),
        request_timeout=_env_float("PLANNER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        mock_delay=_env_float("PLANNER_MOCK_DELAY", DEFAULT_MOCK_DELAY),
        pdf_font=_env_str("PLANNER_PDF_FONT") or find_unicode_font(),
    )
