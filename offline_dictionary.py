# offline_dictionary.py
# Offline multilingual term dictionary used when the online translator is down.
# Whole-word substitution only; anything not listed passes through unchanged.

import re
from functools import lru_cache

TERMS = {
    "hi": {
        "hello": "नमस्ते",
        "thank you": "धन्यवाद",
        "sorry": "माफ़ कीजिये",
        "fever": "बुखार",
        "headache": "सिरदर्द",
        "cough": "खांसी",
        "cold": "जुकाम",
        "pain": "दर्द",
        "diarrhea": "दस्त",
        "vaccine": "टीका",
        "vaccination": "टीकाकरण",
        "doctor": "डॉक्टर",
        "hospital": "अस्पताल",
        "medicine": "दवा",
        "water": "पानी",
        "rest": "आराम",
        "mosquito": "मच्छर",
        "symptoms": "लक्षण",
        "prevention": "रोकथाम",
        "treatment": "इलाज",
        "emergency": "आपातकाल",
    },
    "or": {
        "hello": "ନମସ୍କାର",
        "thank you": "ଧନ୍ୟବାଦ",
        "fever": "ଜ୍ୱର",
        "headache": "ମୁଣ୍ଡବିନ୍ଧା",
        "cough": "କାଶ",
        "vaccine": "ଟିକା",
        "doctor": "ଡାକ୍ତର",
        "hospital": "ଡାକ୍ତରଖାନା",
        "medicine": "ଔଷଧ",
        "water": "ପାଣି",
        "mosquito": "ମଶା",
    },
    "ta": {
        "hello": "வணக்கம்",
        "thank you": "நன்றி",
        "fever": "காய்ச்சல்",
        "headache": "தலைவலி",
        "cough": "இருமல்",
        "vaccine": "தடுப்பூசி",
        "doctor": "மருத்துவர்",
        "hospital": "மருத்துவமனை",
        "medicine": "மருந்து",
        "water": "தண்ணீர்",
        "mosquito": "கொசு",
    },
    "te": {
        "hello": "నమస్కారం",
        "thank you": "ధన్యవాదాలు",
        "fever": "జ్వరం",
        "headache": "తలనొప్పి",
        "cough": "దగ్గు",
        "vaccine": "టీకా",
        "doctor": "వైద్యుడు",
        "hospital": "ఆసుపత్రి",
        "medicine": "మందు",
        "water": "నీరు",
        "mosquito": "దోమ",
    },
    "kn": {
        "hello": "ನಮಸ್ಕಾರ",
        "thank you": "ಧನ್ಯವಾದಗಳು",
        "fever": "ಜ್ವರ",
        "headache": "ತಲೆನೋವು",
        "cough": "ಕೆಮ್ಮು",
        "vaccine": "ಲಸಿಕೆ",
        "doctor": "ವೈದ್ಯ",
        "hospital": "ಆಸ್ಪತ್ರೆ",
        "medicine": "ಔಷಧ",
        "water": "ನೀರು",
        "mosquito": "ಸೊಳ್ಳೆ",
    },
    "ml": {
        "hello": "നമസ്കാരം",
        "thank you": "നന്ദി",
        "fever": "പനി",
        "headache": "തലവേദന",
        "cough": "ചുമ",
        "vaccine": "വാക്സിൻ",
        "doctor": "ഡോക്ടർ",
        "hospital": "ആശുപത്രി",
        "medicine": "മരുന്ന്",
        "water": "വെള്ളം",
        "mosquito": "കൊതുക്",
    },
}

# \w misses Indic vowel signs, so the Indic blocks count as word characters too
_WORD_CHAR = r"[\w\u0900-\u0D7F]"


def _mapping(source: str, target: str) -> dict[str, str]:
    if source == "en":
        return TERMS.get(target, {})
    if target == "en":
        return {v: k for k, v in TERMS.get(source, {}).items()}
    return {}


@lru_cache(maxsize=None)
def _pattern(source: str, target: str) -> tuple[re.Pattern | None, dict[str, str]]:
    mapping = {k.lower(): v for k, v in _mapping(source, target).items()}
    if not mapping:
        return None, mapping
    # longest first so "thank you" wins over any shorter overlap
    alternation = "|".join(re.escape(k) for k in sorted(mapping, key=len, reverse=True))
    pattern = re.compile(rf"(?<!{_WORD_CHAR})(?:{alternation})(?!{_WORD_CHAR})", re.IGNORECASE)
    return pattern, mapping


def _substitute(text: str, source: str, target: str) -> str:
    pattern, mapping = _pattern(source, target)
    if pattern is None:
        return text
    return pattern.sub(lambda m: mapping.get(m.group(0).lower(), m.group(0)), text)


def translate_offline(text: str, target: str, source: str = "en") -> str:
    """Best-effort word substitution; pivots through English for xx -> yy."""
    if not text or source == target:
        return text or ""
    if source != "en" and target != "en":
        return _substitute(_substitute(text, source, "en"), "en", target)
    return _substitute(text, source, target)
