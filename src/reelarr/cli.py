"""Command-line interface for reelarr."""

from __future__ import annotations

import asyncio
import json
import os
from contextlib import AsyncExitStack
from enum import Enum
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from reelarr.clients import (
    BraveSearchClient,
    OmdbClient,
    RadarrClient,
    SonarrClient,
    TmdbClient,
    TvdbClient,
)
from reelarr.config import Config, ConfigurationError
from reelarr.engine import MatchingEngine, PassAlreadyRunningError, PassStats
from reelarr.library import ArrLibrary
from reelarr.logging_config import configure_logging, parse_level
from reelarr.matching.catalogs import Catalogs
from reelarr.matching.resolver import IdentityResolver
from reelarr.matching.similarity import (
    similarity as title_similarity,
)
from reelarr.matching.similarity import (
    validate_show_name_match,
    validate_year_match,
)
from reelarr.models.common import MediaKind, ParsedRelease
from reelarr.parsing.title import parse_release_title
from reelarr.parsing.tv import split_tv_title
from reelarr.progress import LoggingProgressSink
from reelarr.scoring.quality import evaluate
from reelarr.storage.sqlite import SqliteReleaseRepository

app = typer.Typer(
    name="reelarr",
    help="Match scene releases to TMDB/TVDB/IMDB and score them for acquisition.",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


class OutputFormat(str, Enum):
    """Output format options."""

    JSON = "json"
    TABLE = "table"


class KindOption(str, Enum):
    """Release kinds selectable on the command line."""

    MOVIE = "movie"
    TV = "tv"


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Logging level (debug, info, warning, error). Overrides REELARR_LOG_LEVEL.",
        ),
    ] = None,
) -> None:
    """Match scene releases to catalog identities and score their quality."""
    level = log_level or os.environ.get("REELARR_LOG_LEVEL")
    if level is None:
        try:
            level = Config.load().logging.level
        except ConfigurationError:
            level = "info"
    try:
        parse_level(level)
    except ValueError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
    configure_logging(level)


def _parsed_to_dict(parsed: ParsedRelease) -> dict[str, object]:
    return {
        "resolution": parsed.resolution.value,
        "codec": parsed.codec.value,
        "source_tag": parsed.source_tag,
        "audio": parsed.audio,
        "size_mb": parsed.size_mb,
        "audio_languages": sorted(parsed.audio_languages),
    }


def _print_mapping(title: str, data: dict[str, object]) -> None:
    table = Table(title=title)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    for key, value in data.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value) or "-"
        table.add_row(key.replace("_", " ").title(), "-" if value is None else str(value))
    console.print(table)


@app.command()
def parse(
    title: Annotated[str, typer.Argument(help="Raw release title.")],
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format.")
    ] = OutputFormat.TABLE,
) -> None:
    """Parse the technical attributes of a release title.

    Example:
        reelarr parse "Movie.2025.1080p.AMZN.WEB-DL.DD+5.1.x264"
    """
    data = _parsed_to_dict(parse_release_title(title))
    if output_format == OutputFormat.JSON:
        console.print(json.dumps(data, indent=2))
    else:
        _print_mapping(f"Parsed: {escape(title)}", data)


@app.command()
def split(
    title: Annotated[str, typer.Argument(help="Raw TV release title.")],
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format.")
    ] = OutputFormat.TABLE,
) -> None:
    """Split a TV release title into show name, season and year."""
    info = split_tv_title(title)
    data: dict[str, object] = {
        "show_name": info.show_name,
        "season": info.season,
        "year": info.year,
    }
    if output_format == OutputFormat.JSON:
        console.print(json.dumps(data, indent=2))
    else:
        _print_mapping(f"Split: {escape(title)}", data)


@app.command()
def similarity(
    first: Annotated[str, typer.Argument(help="Parsed show name.")],
    second: Annotated[str, typer.Argument(help="Candidate catalog title.")],
    parsed_year: Annotated[int | None, typer.Option("--year", help="Parsed year.")] = None,
    candidate_year: Annotated[
        int | None, typer.Option("--candidate-year", help="Candidate year.")
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format.")
    ] = OutputFormat.TABLE,
) -> None:
    """Score two titles and run the match validators."""
    data: dict[str, object] = {
        "similarity": round(title_similarity(first, second), 4),
        "name_match": validate_show_name_match(first, second),
        "year_match": validate_year_match(parsed_year, candidate_year),
    }
    if output_format == OutputFormat.JSON:
        console.print(json.dumps(data, indent=2))
    else:
        _print_mapping(escape(f"{first!r} vs {second!r}"), data)


@app.command()
def score(
    title: Annotated[str, typer.Argument(help="Raw release title.")],
    original_language: Annotated[
        str | None,
        typer.Option("--original-language", help="ISO 639-1 code of the original language."),
    ] = None,
    existing_score: Annotated[
        float | None, typer.Option("--existing-score", help="Score of the held file.")
    ] = None,
    existing_size: Annotated[
        float | None, typer.Option("--existing-size", help="Size of the held file in MB.")
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format.")
    ] = OutputFormat.TABLE,
) -> None:
    """Score a release title with the configured quality settings.

    Example:
        reelarr score "Movie.2025.2160p.WEB-DL.DDP5.1.x265" --existing-score 60
    """
    try:
        config = Config.load()
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e

    parsed = parse_release_title(title)
    verdict = evaluate(
        parsed,
        config.quality,
        original_language=original_language,
        existing_score=existing_score,
        existing_size_mb=existing_size,
    )
    data: dict[str, object] = {
        **_parsed_to_dict(parsed),
        "eligible": verdict.eligible,
        "dubbed": verdict.dubbed,
        "score": verdict.score,
        "status": verdict.status.value,
    }
    if output_format == OutputFormat.JSON:
        console.print(json.dumps(data, indent=2))
    else:
        _print_mapping(f"Score: {escape(title)}", data)


async def _run_match(config: Config, kind: MediaKind | None) -> PassStats:
    """Open the configured clients and run one matching pass."""
    catalog_cfg = config.catalogs
    timeout = config.timeout
    async with AsyncExitStack() as stack:
        catalogs = Catalogs()
        if catalog_cfg.tmdb_api_key:
            catalogs.tmdb = await stack.enter_async_context(
                TmdbClient(catalog_cfg.tmdb_api_key, timeout=timeout)
            )
        if catalog_cfg.tvdb_api_key:
            catalogs.tvdb = await stack.enter_async_context(
                TvdbClient(catalog_cfg.tvdb_api_key, pin=catalog_cfg.tvdb_pin, timeout=timeout)
            )
        if catalog_cfg.omdb_api_key:
            catalogs.omdb = await stack.enter_async_context(
                OmdbClient(
                    catalog_cfg.omdb_api_key,
                    timeout=timeout,
                    min_request_interval=catalog_cfg.search_interval,
                )
            )
        if catalog_cfg.brave_api_key:
            catalogs.brave = await stack.enter_async_context(
                BraveSearchClient(
                    catalog_cfg.brave_api_key,
                    timeout=timeout,
                    min_request_interval=catalog_cfg.search_interval,
                )
            )

        radarr = sonarr = None
        if config.radarr is not None:
            radarr = await stack.enter_async_context(
                RadarrClient(config.radarr.url, config.radarr.api_key, timeout=timeout)
            )
        if config.sonarr is not None:
            sonarr = await stack.enter_async_context(
                SonarrClient(config.sonarr.url, config.sonarr.api_key, timeout=timeout)
            )

        repo = SqliteReleaseRepository(config.database.path)
        stack.callback(repo.close)
        engine = MatchingEngine(
            repo,
            IdentityResolver(catalogs, config.matching),
            config.quality,
            library=ArrLibrary(config.quality, radarr=radarr, sonarr=sonarr),
            progress=LoggingProgressSink(),
        )
        return await engine.run_pass(kind)


@app.command()
def match(
    kind: Annotated[
        KindOption | None, typer.Option("--kind", "-k", help="Only match movies or TV.")
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format.")
    ] = OutputFormat.TABLE,
) -> None:
    """Run one matching pass over the stored releases.

    Resolves catalog IDs, propagates them to sibling releases and rescores
    every release that is not settled or dismissed.
    """
    try:
        config = Config.load()
        config.require_tmdb()
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e

    media_kind = MediaKind(kind.value) if kind is not None else None
    try:
        stats = asyncio.run(_run_match(config, media_kind))
    except PassAlreadyRunningError as e:
        error_console.print(f"[yellow]{escape(str(e))}[/yellow]")
        raise typer.Exit(1) from e

    if output_format == OutputFormat.JSON:
        console.print(json.dumps(stats.to_dict(), indent=2))
        return

    table = Table(title="Matching Pass")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Releases", str(stats.total))
    table.add_row("Processed", str(stats.processed))
    table.add_row("Propagated", str(stats.propagated))
    table.add_row("Errors", str(stats.errors))
    for outcome, count in sorted(stats.outcomes.items()):
        table.add_row(f"Outcome: {outcome}", str(count))
    for status, count in sorted(stats.statuses.items()):
        table.add_row(f"Status: {status}", str(count))
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from reelarr import __version__

    console.print(f"reelarr version {__version__}")


if __name__ == "__main__":
    app()
