"""Shared fixtures for reelarr tests."""

from collections.abc import Callable
from typing import Any

import pytest

from reelarr.models.common import MediaKind
from reelarr.models.release import Identity, Release
from reelarr.parsing.title import parse_release_title

ReleaseFactory = Callable[..., Release]


@pytest.fixture
def make_release() -> ReleaseFactory:
    """Build releases with sensible defaults; the title is parsed."""
    counter = 0

    def _make(
        clean_title: str = "Show Name",
        *,
        kind: MediaKind = MediaKind.TV,
        title: str | None = None,
        guid: str | None = None,
        identity: Identity | None = None,
        **kwargs: Any,
    ) -> Release:
        nonlocal counter
        counter += 1
        raw = title or f"{clean_title.replace(' ', '.')}.S01.1080p.WEB-DL.DDP5.1.x264"
        return Release(
            guid=guid or f"guid-{counter}",
            title=raw,
            kind=kind,
            clean_title=clean_title,
            parsed=parse_release_title(raw),
            identity=identity or Identity(),
            **kwargs,
        )

    return _make
