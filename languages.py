# languages.py
# Language resolution: script heuristics first, statistical detector second.

import logging

from langdetect import DetectorFactory, detect as _langdetect
from langdetect.lang_detect_exception import LangDetectException

from config import settings

logger = logging.getLogger(__name__)

# langdetect is randomized unless seeded
DetectorFactory.seed = 0

DEFAULT_LANGUAGE = settings.DEFAULT_LANGUAGE

SUPPORTED_LANGUAGES = {
    "en": "English",
    "hi": "हिन्दी",
    "or": "ଓଡ଼ିଆ",
    "ta": "தமிழ்",
    "te": "తెలుగు",
    "kn": "ಕನ್ನಡ",
    "ml": "മലയാളം",
}

# Unicode blocks whose presence pins the language regardless of length
SCRIPT_BLOCKS = [
    ("hi", 0x0900, 0x097F),  # Devanagari
    ("or", 0x0B00, 0x0B7F),  # Odia
    ("ta", 0x0B80, 0x0BFF),  # Tamil
    ("te", 0x0C00, 0x0C7F),  # Telugu
    ("kn", 0x0C80, 0x0CFF),  # Kannada
    ("ml", 0x0D00, 0x0D7F),  # Malayalam
]

SHORT_TEXT_MAX_TOKENS = 2
SHORT_TEXT_MAX_CHARS = 20


def normalize_language(code: str | None) -> str:
    """Two-letter lowercase code, or the default language when unsupported."""
    if not code:
        return DEFAULT_LANGUAGE
    code = str(code).strip().lower().replace("_", "-").split("-")[0][:2]
    return code if code in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def script_language(text: str) -> str | None:
    """Language of the first character that falls in a known script block."""
    for ch in text:
        cp = ord(ch)
        if cp < 0x0900:
            continue
        for lang, start, end in SCRIPT_BLOCKS:
            if start <= cp <= end:
                return lang
    return None


def _is_short(text: str) -> bool:
    return len(text.split()) <= SHORT_TEXT_MAX_TOKENS or len(text) < SHORT_TEXT_MAX_CHARS


def _statistical_language(text: str) -> str | None:
    try:
        raw = _langdetect(text)
    except LangDetectException:
        return None
    # langdetect emits ISO 639-1 codes, sometimes with a region ("zh-cn")
    code = raw.lower().split("-")[0]
    return code if code in SUPPORTED_LANGUAGES else None


def detect(text: str | None) -> str:
    """
    Detect the language of a query.

    Short strings are assumed to be in the default language unless they carry
    a non-Latin script we support; the n-gram detector is unreliable on them.
    """
    try:
        text = (text or "").strip()
        if len(text) < 2:
            return DEFAULT_LANGUAGE

        if _is_short(text):
            return script_language(text) or DEFAULT_LANGUAGE

        lang = _statistical_language(text)
        if lang:
            return lang
        # no Odia profile in the detector, so the script table gets a second look
        return script_language(text) or DEFAULT_LANGUAGE
    except Exception as e:
        logger.debug("Language detection failed, using %s: %s", DEFAULT_LANGUAGE, e)
        return DEFAULT_LANGUAGE


def resolve_request_language(*candidates: str | None) -> str:
    """
    First non-empty language hint among (query param, header, body field).

    Returns "auto" when none is given so the caller detects from the text.
    """
    for value in candidates:
        value = (value or "").strip().lower()
        if not value:
            continue
        if value == "auto":
            return "auto"
        return value[:2]
    return "auto"
