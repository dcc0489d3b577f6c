"""Quality scoring and acquisition decisions.

A release's quality score is a weighted sum over its parsed attributes. The
decision compares that score (and, optionally, file size) against whatever
the library already holds.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from reelarr.models.common import Codec, ParsedRelease, ReleaseStatus, Resolution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionRule:
    """Per-resolution eligibility and codec preferences.

    Attributes:
        resolution: The resolution this rule applies to
        allowed: False rejects every release at this resolution
        preferred_codecs: Codecs that earn the preferred codec bonus
        discouraged_codecs: Codecs that make a release ineligible
    """

    resolution: Resolution
    allowed: bool = True
    preferred_codecs: tuple[Codec, ...] = ()
    discouraged_codecs: tuple[Codec, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResolutionRule:
        """Build a rule from a config table."""
        return cls(
            resolution=Resolution(data["resolution"]),
            allowed=bool(data.get("allowed", True)),
            preferred_codecs=tuple(Codec(c) for c in data.get("preferred_codecs", ())),
            discouraged_codecs=tuple(Codec(c) for c in data.get("discouraged_codecs", ())),
        )


def _default_rules() -> list[ResolutionRule]:
    return [
        ResolutionRule(Resolution.UHD_2160P, preferred_codecs=(Codec.X265,)),
        ResolutionRule(Resolution.FHD_1080P, preferred_codecs=(Codec.X265,)),
        ResolutionRule(Resolution.HD_720P),
        ResolutionRule(Resolution.SD_480P, allowed=False),
        ResolutionRule(Resolution.UNKNOWN, allowed=False),
    ]


@dataclass
class QualitySettings:
    """Weights, thresholds and eligibility rules used for scoring.

    Weight tables are keyed by the parsed attribute value ("2160p", "x265",
    "WEB-DL"). Audio weights are keyed by substring and checked in insertion
    order; the first key contained in the parsed audio label applies.
    """

    resolutions: list[ResolutionRule] = field(default_factory=_default_rules)
    resolution_weights: dict[str, float] = field(
        default_factory=lambda: {"2160p": 40.0, "1080p": 30.0, "720p": 15.0, "480p": 5.0}
    )
    source_tag_weights: dict[str, float] = field(
        default_factory=lambda: {
            "Bluray": 25.0,
            "WEB-DL": 20.0,
            "AMZN": 18.0,
            "NF": 18.0,
            "DSNP": 16.0,
            "WEBRip": 15.0,
            "HS": 12.0,
            "ZEE5": 10.0,
            "JC": 10.0,
            "SS": 10.0,
            "DVD": 5.0,
        }
    )
    codec_weights: dict[str, float] = field(
        default_factory=lambda: {"x265": 15.0, "x264": 10.0}
    )
    audio_weights: dict[str, float] = field(
        default_factory=lambda: {
            "TrueHD": 20.0,
            "Atmos": 18.0,
            "DTS-HD": 16.0,
            "DDP": 12.0,
            "DTS": 10.0,
            "DD": 8.0,
            "AAC": 5.0,
        }
    )
    preferred_audio_languages: list[str] = field(default_factory=lambda: ["en"])
    preferred_language_bonus: float = 10.0
    dubbed_penalty: float = 25.0
    preferred_codec_bonus: float = 10.0
    discouraged_codec_penalty: float = 15.0
    upgrade_threshold: float = 20.0
    size_bonus_enabled: bool = False
    size_only_upgrade_percent: float | None = None

    @classmethod
    def default(cls) -> QualitySettings:
        """Return the shipped default settings."""
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QualitySettings:
        """Build settings from a `[quality]` config table.

        Keys that are absent keep their defaults. Weight tables replace the
        default tables wholesale.
        """
        kwargs: dict[str, Any] = {}
        if "resolutions" in data:
            kwargs["resolutions"] = [ResolutionRule.from_dict(r) for r in data["resolutions"]]
        for name in ("resolution_weights", "source_tag_weights", "codec_weights", "audio_weights"):
            if name in data:
                kwargs[name] = {str(k): float(v) for k, v in data[name].items()}
        if "preferred_audio_languages" in data:
            kwargs["preferred_audio_languages"] = [
                str(code).lower() for code in data["preferred_audio_languages"]
            ]
        for name in (
            "preferred_language_bonus",
            "dubbed_penalty",
            "preferred_codec_bonus",
            "discouraged_codec_penalty",
            "upgrade_threshold",
        ):
            if name in data:
                kwargs[name] = float(data[name])
        if "size_bonus_enabled" in data:
            kwargs["size_bonus_enabled"] = bool(data["size_bonus_enabled"])
        if data.get("size_only_upgrade_percent") is not None:
            kwargs["size_only_upgrade_percent"] = float(data["size_only_upgrade_percent"])

        return cls(**kwargs)

    def rule_for(self, resolution: Resolution) -> ResolutionRule | None:
        """Return the rule configured for a resolution, if any."""
        for rule in self.resolutions:
            if rule.resolution == resolution:
                return rule
        return None


def is_dubbed(audio_languages: Iterable[str], original_language: str | None) -> bool:
    """Check whether a release's audio omits the title's original language.

    Only decidable when both the original language and at least one audio
    language are known; otherwise the release is not considered dubbed.
    """
    languages = {lang.lower()[:2] for lang in audio_languages}
    if not original_language or not languages:
        return False
    return original_language.lower()[:2] not in languages


def has_preferred_language(audio_languages: Iterable[str], settings: QualitySettings) -> bool:
    """Check whether any audio language is one of the preferred languages."""
    preferred = {lang.lower() for lang in settings.preferred_audio_languages}
    return any(lang.lower() in preferred for lang in audio_languages)


def is_release_allowed(parsed: ParsedRelease, settings: QualitySettings) -> bool:
    """Check the hard eligibility rules for a parsed release.

    A release is rejected when its resolution has no rule, the rule is not
    allowed, or the codec is discouraged at that resolution.
    """
    rule = settings.rule_for(parsed.resolution)
    if rule is None or not rule.allowed:
        return False
    return parsed.codec not in rule.discouraged_codecs


def _audio_weight(audio: str, weights: Mapping[str, float]) -> float:
    audio_lower = audio.lower()
    for pattern, weight in weights.items():
        if pattern.lower() in audio_lower:
            return weight
    return 0.0


def compute_quality_score(
    parsed: ParsedRelease,
    settings: QualitySettings,
    *,
    original_language: str | None = None,
    preferred_language: bool | None = None,
) -> float:
    """Compute the weighted quality score of a parsed release.

    Args:
        parsed: The parsed release attributes
        settings: Scoring weights and rules
        original_language: The title's original language, used to detect dubs
        preferred_language: Override for the preferred language bonus; by
            default it is granted when any audio language is preferred

    Returns:
        The score rounded to two decimals
    """
    score = settings.resolution_weights.get(parsed.resolution.value, 0.0)
    score += settings.source_tag_weights.get(parsed.source_tag, 0.0)
    score += settings.codec_weights.get(parsed.codec.value, 0.0)
    score += _audio_weight(parsed.audio, settings.audio_weights)

    rule = settings.rule_for(parsed.resolution)
    if rule is not None:
        if parsed.codec in rule.preferred_codecs:
            score += settings.preferred_codec_bonus
        if parsed.codec in rule.discouraged_codecs:
            score -= settings.discouraged_codec_penalty

    if preferred_language is None:
        preferred_language = has_preferred_language(parsed.audio_languages, settings)
    if preferred_language:
        score += settings.preferred_language_bonus

    if is_dubbed(parsed.audio_languages, original_language):
        score -= settings.dubbed_penalty

    return round(score, 2)


def decide_status(
    new_score: float,
    new_size_mb: float | None,
    existing_score: float | None,
    existing_size_mb: float | None,
    settings: QualitySettings,
) -> ReleaseStatus:
    """Classify a release against the current library holding.

    Args:
        new_score: Quality score of the incoming release
        new_size_mb: Size of the incoming release, if known
        existing_score: Score of the held file; None means nothing is held
        existing_size_mb: Size of the held file, if known
        settings: Thresholds to apply

    Returns:
        NEW, UPGRADE_CANDIDATE or IGNORED
    """
    if existing_score is None:
        return ReleaseStatus.NEW

    if new_score - existing_score >= settings.upgrade_threshold:
        return ReleaseStatus.UPGRADE_CANDIDATE

    if (
        settings.size_bonus_enabled
        and settings.size_only_upgrade_percent is not None
        and new_size_mb is not None
        and existing_size_mb
    ):
        increase = (new_size_mb - existing_size_mb) / existing_size_mb * 100
        if increase >= settings.size_only_upgrade_percent:
            logger.debug("Size-only upgrade: %.1f%% larger than held file", increase)
            return ReleaseStatus.UPGRADE_CANDIDATE

    return ReleaseStatus.IGNORED


@dataclass(frozen=True)
class ScoreVerdict:
    """Outcome of scoring a release.

    Attributes:
        eligible: False when a hard rule rejected the release
        score: The computed quality score
        status: The status the release should move to
        dubbed: Whether the audio omits the original language
    """

    eligible: bool
    score: float
    status: ReleaseStatus
    dubbed: bool = False


def evaluate(
    parsed: ParsedRelease,
    settings: QualitySettings,
    *,
    original_language: str | None = None,
    existing_score: float | None = None,
    existing_size_mb: float | None = None,
) -> ScoreVerdict:
    """Score a release and decide its status in one step.

    Ineligible releases are always IGNORED, whatever their score.
    """
    score = compute_quality_score(parsed, settings, original_language=original_language)
    dubbed = is_dubbed(parsed.audio_languages, original_language)
    if not is_release_allowed(parsed, settings):
        return ScoreVerdict(False, score, ReleaseStatus.IGNORED, dubbed)
    status = decide_status(score, parsed.size_mb, existing_score, existing_size_mb, settings)
    return ScoreVerdict(True, score, status, dubbed)
