"""Title similarity scoring and match validation gates."""

from __future__ import annotations


def similarity(a: str, b: str) -> float:
    """Score how similar two titles are, from 0.0 to 1.0.

    Exact matches score 1.0. When one title contains the other the score is
    0.7 plus up to 0.2 scaled by the length ratio. Otherwise the Jaccard word
    overlap is used, floored at 0.6 when every word of the shorter title
    appears in the longer one.

    Args:
        a: First title
        b: Second title

    Returns:
        Similarity in [0, 1]
    """
    s1 = (a or "").casefold().strip()
    s2 = (b or "").casefold().strip()

    if s1 == s2:
        return 1.0

    if s1 and s2 and (s1 in s2 or s2 in s1):
        shorter, longer = (s1, s2) if len(s1) <= len(s2) else (s2, s1)
        return 0.7 + (len(shorter) / len(longer)) * 0.2

    words1 = s1.split()
    words2 = s2.split()
    if not words1 or not words2:
        return 0.0

    unique2 = set(words2)
    common = [w for w in words1 if w in unique2]
    jaccard = len(common) / len(set(words1) | unique2)

    shorter_words, longer_words = (words1, words2) if len(words1) <= len(words2) else (words2, words1)
    longer_set = set(longer_words)
    if all(w in longer_set for w in shorter_words):
        return max(jaccard, 0.6)

    return min(jaccard, 1.0)


def significant_words(name: str) -> list[str]:
    """Lowercased words longer than two characters."""
    return [w for w in (name or "").casefold().split() if len(w) > 2]


def validate_show_name_match(parsed: str, candidate: str, min_word_match: int = 1) -> bool:
    """Check that a candidate title carries the key words of the parsed name.

    Names with one or two significant words must have all of them in the
    candidate; longer names need at least ``min_word_match``.

    Args:
        parsed: Show name parsed from the release title
        candidate: Title returned by the catalog
        min_word_match: Minimum shared words for longer names

    Returns:
        True if the candidate is acceptable
    """
    words = significant_words(parsed)
    if not words:
        return True

    candidate_lower = (candidate or "").casefold().strip()
    matched = [w for w in words if w in candidate_lower]

    if len(words) <= 2:
        return len(matched) == len(words)
    return len(matched) >= min_word_match


def validate_year_match(
    parsed_year: int | None,
    candidate_year: int | str | None,
    tolerance: int = 3,
) -> bool:
    """Check that two years agree within a tolerance.

    A missing or unparseable year on either side is not evidence of a
    mismatch, so it passes.
    """
    if not parsed_year or not candidate_year:
        return True
    try:
        candidate = int(str(candidate_year)[:4])
    except ValueError:
        return True
    return abs(parsed_year - candidate) <= tolerance
