"""Release title parser.

Extracts resolution, codec, source tag, audio, size and embedded audio
languages from free-form scene release names. Every attribute family is an
ordered list of patterns evaluated left to right; the first match wins.
Parsing never raises: anything unrecognised falls back to its sentinel.
"""

from __future__ import annotations

import re

from reelarr.models.common import UNKNOWN_AUDIO, Codec, ParsedRelease, Resolution
from reelarr.parsing.languages import TITLE_LANGUAGE_PATTERNS

# Alphanumeric boundaries; \b treats "_" as a word character.
_L = r"(?<![A-Za-z0-9])"
_R = r"(?![A-Za-z0-9])"


def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


RESOLUTION_PATTERNS: tuple[tuple[re.Pattern[str], Resolution], ...] = (
    (_compile(rf"2160[pi]|{_L}(?:4K|UHD){_R}"), Resolution.UHD_2160P),
    (_compile(rf"1080[pi]|{_L}FHD{_R}"), Resolution.FHD_1080P),
    (_compile(r"720[pi]"), Resolution.HD_720P),
    (_compile(r"480[pi]|576[pi]"), Resolution.SD_480P),
)

CODEC_PATTERNS: tuple[tuple[re.Pattern[str], Codec], ...] = (
    (_compile(rf"[xh]\.?265|{_L}HEVC{_R}"), Codec.X265),
    (_compile(rf"[xh]\.?264|{_L}AVC{_R}"), Codec.X264),
)

# Generic delivery methods are checked before streaming-service codes.
SOURCE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (_compile(rf"Blu[.\s-]?Ray|BDRip|BRRip|{_L}BD{_R}"), "Bluray"),
    (_compile(r"DVD(?:Rip)?"), "DVD"),
    (_compile(r"WEB[.\s-]?DL"), "WEB-DL"),
    (_compile(r"WEB[.\s-]?Rip"), "WEBRip"),
    (_compile(rf"{_L}(?:AMZN|Amazon){_R}"), "AMZN"),
    (_compile(rf"{_L}(?:NF|Netflix){_R}"), "NF"),
    (_compile(rf"{_L}(?:JC|JioCinema){_R}"), "JC"),
    (_compile(rf"{_L}ZEE5{_R}"), "ZEE5"),
    (_compile(rf"{_L}(?:DSNP|Disney\+?){_R}"), "DSNP"),
    (_compile(rf"{_L}(?:HS|Hotstar){_R}"), "HS"),
    (_compile(rf"{_L}(?:SS|SonyLIV){_R}"), "SS"),
)

_CHANNELS = r"(?:[\s.]?([257]\.[01]))?"

_TRUEHD = _compile(r"TrueHD")
_ATMOS = _compile(r"Atmos")
_DOLBY = _compile(rf"{_L}(E-?AC-?3|DDP|DD\+|AC-?3|DD)(?![A-Za-z]){_CHANNELS}")
_DTS = _compile(rf"{_L}DTS(-?HD(?:[.\s-]?MA)?|[.\s-]?X)?{_R}")
_AAC = _compile(rf"{_L}AAC(?:LC)?{_CHANNELS}")
_PCM = _compile(rf"{_L}L?PCM{_R}")

_SIZE = _compile(r"(\d+(?:\.\d+)?)\s*(GB|GiB|MB|MiB)(?![A-Za-z])")

_DOLBY_CODES = {
    "EAC3": "DDP",
    "E-AC3": "DDP",
    "EAC-3": "DDP",
    "E-AC-3": "DDP",
    "DDP": "DDP",
    "DD+": "DDP",
    "AC3": "DD",
    "AC-3": "DD",
    "DD": "DD",
}


def _first_match(title: str, patterns: tuple[tuple[re.Pattern[str], object], ...]) -> object | None:
    for pattern, value in patterns:
        if pattern.search(title):
            return value
    return None


def parse_resolution(title: str) -> Resolution:
    """Parse the resolution, treating 4K/UHD as 2160p."""
    value = _first_match(title, RESOLUTION_PATTERNS)
    return value if isinstance(value, Resolution) else Resolution.UNKNOWN


def parse_codec(title: str) -> Codec:
    """Parse the video codec family."""
    value = _first_match(title, CODEC_PATTERNS)
    return value if isinstance(value, Codec) else Codec.UNKNOWN


def parse_source_tag(title: str) -> str:
    """Parse the source tag; generic delivery methods win over service codes."""
    value = _first_match(title, SOURCE_PATTERNS)
    return value if isinstance(value, str) else "OTHER"


def parse_audio(title: str) -> str:
    """Parse the audio codec and channel layout into a normalized label.

    Examples:
        "DD+5.1" -> "DDP 5.1", "AC3" -> "DD", "TrueHD.Atmos" -> "TrueHD Atmos"
    """
    has_atmos = _ATMOS.search(title) is not None

    if _TRUEHD.search(title):
        return "TrueHD Atmos" if has_atmos else "TrueHD"

    dolby = _DOLBY.search(title)
    if dolby:
        label = _DOLBY_CODES.get(dolby.group(1).upper(), "DD")
        if dolby.group(2):
            label = f"{label} {dolby.group(2)}"
        return f"{label} Atmos" if has_atmos else label

    if has_atmos:
        return "Atmos"

    dts = _DTS.search(title)
    if dts:
        variant = (dts.group(1) or "").upper().lstrip("-. ")
        if variant.startswith("HD"):
            return "DTS-HD MA" if variant.endswith("MA") else "DTS-HD"
        if variant == "X":
            return "DTS-X"
        return "DTS"

    aac = _AAC.search(title)
    if aac:
        return f"AAC {aac.group(1)}" if aac.group(1) else "AAC"

    pcm = _PCM.search(title)
    if pcm:
        return pcm.group(0).upper()

    return UNKNOWN_AUDIO


def parse_size_mb(text: str) -> float | None:
    """Parse the first size marker, converting GB/GiB to MB."""
    match = _SIZE.search(text)
    if not match:
        return None
    value = float(match.group(1))
    if match.group(2).upper() in ("GB", "GIB"):
        return value * 1024
    return value


def parse_languages(title: str) -> frozenset[str]:
    """Return the ISO 639-1 codes of every language named in the title."""
    return frozenset(code for pattern, code in TITLE_LANGUAGE_PATTERNS if pattern.search(title))


def parse_release_title(title: str) -> ParsedRelease:
    """Parse a raw release title into its technical attributes.

    Args:
        title: Free-form release name, e.g. "Movie.2025.1080p.BluRay.x264"

    Returns:
        ParsedRelease with sentinels for anything not recognised
    """
    title = title or ""
    return ParsedRelease(
        resolution=parse_resolution(title),
        codec=parse_codec(title),
        source_tag=parse_source_tag(title),
        audio=parse_audio(title),
        size_mb=parse_size_mb(title),
        audio_languages=parse_languages(title),
    )


def normalize_title(title: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    normalized = re.sub(r"[^\w\s]", " ", (title or "").lower())
    return re.sub(r"\s+", " ", normalized).strip()
