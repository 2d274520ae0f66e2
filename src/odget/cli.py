"""CLI interface for odget."""

import asyncio
import logging
import re
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import click
import structlog

from odget import __version__
from odget.errors import ConfigError, OdGetError
from odget.models import DEFAULT_USER_AGENT, build_config
from odget.runner import run
from odget.stats import TreeStats


def configure_logging(verbosity: int) -> None:
    """Configure structured logging; each -v lowers the threshold one step."""
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def _validate_url(ctx, param, value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise click.BadParameter(f"{value!r} is not an absolute http(s) URL")
    return value


def _compile_regex(ctx, param, value: Optional[str]) -> Optional[re.Pattern]:
    if value is None:
        return None
    try:
        return re.compile(value)
    except re.error as e:
        raise click.BadParameter(f"invalid regular expression {value!r}: {e}")


@click.command()
@click.version_option(version=__version__, prog_name="odget")
@click.argument("url", callback=_validate_url)
@click.option(
    "--destination",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=lambda: str(Path.cwd()),
    show_default="current directory",
    help="The path to write the downloaded files to",
)
@click.option(
    "--no-download",
    "-n",
    is_flag=True,
    help="Crawl without downloading (use with --store-state to only write the tree)",
)
@click.option(
    "--verbose",
    "-v",
    "verbosity",
    count=True,
    help="Increase log verbosity (-v info, -vv debug)",
)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=0),
    default=0,
    help="Download at most n files (default: 0 = unlimited)",
)
@click.option(
    "--skip",
    "-s",
    type=click.IntRange(min=0),
    default=0,
    help="Skip the first n eligible files (default: 0)",
)
@click.option(
    "--recursive-depth",
    "-r",
    type=click.IntRange(min=0),
    default=0,
    help="Enter at most n directories (default: 0 = unlimited)",
)
@click.option(
    "--file-filter",
    "-f",
    callback=_compile_regex,
    help="Skip files whose name matches this regex",
)
@click.option(
    "--path-filter",
    "-p",
    callback=_compile_regex,
    help="Skip folders whose name matches this regex",
)
@click.option(
    "--file-matcher",
    "-F",
    callback=_compile_regex,
    help="Only download files whose name matches this regex",
)
@click.option(
    "--path-matcher",
    "-P",
    callback=_compile_regex,
    help="Only enter folders whose name matches this regex",
)
@click.option(
    "--store-state",
    "-S",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Persist crawl and download state to this JSON file to resume later",
)
@click.option(
    "--user-agent",
    default=DEFAULT_USER_AGENT,
    show_default=True,
    help="Custom User-Agent string",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    help="Total timeout per request in seconds (default: none)",
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Hide progress bars",
)
def main(
    url: str,
    destination: Path,
    no_download: bool,
    verbosity: int,
    limit: int,
    skip: int,
    recursive_depth: int,
    file_filter: Optional[re.Pattern],
    path_filter: Optional[re.Pattern],
    file_matcher: Optional[re.Pattern],
    path_matcher: Optional[re.Pattern],
    store_state: Optional[Path],
    user_agent: str,
    timeout: Optional[int],
    no_progress: bool,
):
    """
    Crawl an open directory at URL and download its files.

    Examples:

        odget https://example.com/pub/

        odget https://example.com/pub/ -d ./mirror -F '\\.iso$' -l 10

        odget https://example.com/pub/ -n -S state.json

        odget https://example.com/pub/ -S state.json   # resume
    """
    configure_logging(verbosity)

    try:
        config = build_config(
            url=url,
            destination=destination,
            no_download=no_download,
            limit=limit,
            skip=skip,
            recursion_depth=recursive_depth,
            file_filter=file_filter,
            path_filter=path_filter,
            file_matcher=file_matcher,
            path_matcher=path_matcher,
            state_path=store_state,
            user_agent=user_agent,
            timeout=timeout,
            progress=not no_progress,
        )
    except ConfigError as e:
        raise click.UsageError(str(e))

    click.echo(f"odget {__version__}: {url}", err=True)
    if store_state:
        click.echo(f"State file: {store_state}", err=True)

    try:
        result = asyncio.run(run(config))
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except OdGetError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if no_download:
        click.echo(TreeStats.from_tree(result.root).format_summary())
        return

    counters = result.counters
    click.echo(
        f"Downloaded {counters.files_downloaded} files to {destination} "
        f"({counters.files_skipped} skipped, {len(result.store.downloaded_urls)} done in total)"
    )


if __name__ == "__main__":
    main()
