"""Release title parsing."""

from reelarr.parsing.title import normalize_title, parse_release_title
from reelarr.parsing.tv import parse_episode, split_tv_title

__all__ = ["normalize_title", "parse_episode", "parse_release_title", "split_tv_title"]
