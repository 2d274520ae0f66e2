"""
odget - crawl and download open directory listings.

Builds a tree of an "Index of" listing and mirrors the selected files,
resuming interrupted downloads from a JSON state file.
"""

__version__ = "0.1.0"

from odget.crawler import Crawler
from odget.downloader import Downloader
from odget.errors import ConfigError, FetchError, FilesystemError, OdGetError, ParseError
from odget.fetcher import Fetcher
from odget.models import (
    CrawledDirectory,
    CrawlingState,
    DownloadConfig,
    DownloadedSet,
    FileNode,
    LimitCounters,
    PendingDirectory,
    StateStore,
    build_config,
)
from odget.parser import ListingParser
from odget.runner import run
from odget.state import StateManager

__all__ = [
    "Crawler",
    "Downloader",
    "Fetcher",
    "ListingParser",
    "StateManager",
    "run",
    "CrawledDirectory",
    "CrawlingState",
    "DownloadConfig",
    "DownloadedSet",
    "FileNode",
    "LimitCounters",
    "PendingDirectory",
    "StateStore",
    "build_config",
    "ConfigError",
    "FetchError",
    "FilesystemError",
    "OdGetError",
    "ParseError",
]
