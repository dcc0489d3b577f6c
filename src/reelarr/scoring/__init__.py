"""Quality scoring and release lifecycle."""

from reelarr.scoring.lifecycle import (
    RESCORABLE,
    InvalidTransitionError,
    apply_verdict,
)
from reelarr.scoring.quality import (
    QualitySettings,
    ResolutionRule,
    ScoreVerdict,
    compute_quality_score,
    decide_status,
    evaluate,
    is_dubbed,
    is_release_allowed,
)

__all__ = [
    "RESCORABLE",
    "InvalidTransitionError",
    "QualitySettings",
    "ResolutionRule",
    "ScoreVerdict",
    "apply_verdict",
    "compute_quality_score",
    "decide_status",
    "evaluate",
    "is_dubbed",
    "is_release_allowed",
]
