"""Language name and ISO 639 code mapping."""

from __future__ import annotations

import re

# ISO 639-1 code -> English name
LANGUAGE_NAMES: dict[str, str] = {
    "hi": "Hindi",
    "bn": "Bengali",
    "mr": "Marathi",
    "te": "Telugu",
    "ta": "Tamil",
    "ur": "Urdu",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "pa": "Punjabi",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "ar": "Arabic",
}

# ISO 639-2 (MediaInfo style) -> ISO 639-1
ISO_639_2_TO_1: dict[str, str] = {
    "hin": "hi",
    "ben": "bn",
    "mar": "mr",
    "tel": "te",
    "tam": "ta",
    "urd": "ur",
    "guj": "gu",
    "kan": "kn",
    "mal": "ml",
    "pan": "pa",
    "eng": "en",
    "spa": "es",
    "fra": "fr",
    "fre": "fr",
    "deu": "de",
    "ger": "de",
    "ita": "it",
    "por": "pt",
    "rus": "ru",
    "jpn": "ja",
    "kor": "ko",
    "zho": "zh",
    "chi": "zh",
    "ara": "ar",
}

LANGUAGE_NAME_TO_CODE: dict[str, str] = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}

# Tokens recognised inside release titles; native script spellings included.
_TITLE_LANGUAGE_TOKENS: dict[str, tuple[str, ...]] = {
    "hi": ("Hindi", "हिंदी"),
    "te": ("Telugu", "తెలుగు"),
    "ta": ("Tamil", "தமிழ்"),
    "kn": ("Kannada", "ಕನ್ನಡ"),
    "ml": ("Malayalam", "മലയാളം"),
    "bn": ("Bengali", "Bangla"),
    "mr": ("Marathi",),
    "pa": ("Punjabi",),
    "gu": ("Gujarati",),
    "ur": ("Urdu",),
    "en": ("English", "Eng"),
}

TITLE_LANGUAGE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (
        re.compile(
            r"(?<![^\W\d_])(?:" + "|".join(re.escape(t) for t in tokens) + r")(?![^\W\d_])",
            re.IGNORECASE,
        ),
        code,
    )
    for code, tokens in _TITLE_LANGUAGE_TOKENS.items()
)


def get_language_code(language: str | None) -> str | None:
    """Normalize a language given as ISO 639-1/639-2 code or English name.

    Args:
        language: e.g. "hi", "hin" or "Hindi"

    Returns:
        The ISO 639-1 code, the lowercased input when unmapped, or None
    """
    if not language:
        return None
    lowered = language.strip().lower()
    if lowered in LANGUAGE_NAMES:
        return lowered
    if lowered in ISO_639_2_TO_1:
        return ISO_639_2_TO_1[lowered]
    return LANGUAGE_NAME_TO_CODE.get(lowered, lowered)
