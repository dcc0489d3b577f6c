"""Identity resolution, title similarity and identity propagation."""

from reelarr.matching.catalogs import Catalogs
from reelarr.matching.lease import PassLease
from reelarr.matching.propagation import PropagationResult, find_siblings, propagate_identity
from reelarr.matching.resolver import (
    IdentityResolver,
    MatchingSettings,
    ResolutionOutcome,
    ResolutionResult,
)
from reelarr.matching.similarity import (
    similarity,
    validate_show_name_match,
    validate_year_match,
)

__all__ = [
    "Catalogs",
    "IdentityResolver",
    "MatchingSettings",
    "PassLease",
    "PropagationResult",
    "ResolutionOutcome",
    "ResolutionResult",
    "find_siblings",
    "propagate_identity",
    "similarity",
    "validate_show_name_match",
    "validate_year_match",
]
