"""Regex filters for folders and files."""

import re
from typing import Optional
import structlog

from odget.models import DownloadConfig

logger = structlog.get_logger()


class DownloadFilter:
    """Include/exclude policies applied during the download walk."""

    def __init__(
        self,
        file_filter: Optional[re.Pattern] = None,
        path_filter: Optional[re.Pattern] = None,
        file_matcher: Optional[re.Pattern] = None,
        path_matcher: Optional[re.Pattern] = None,
    ):
        """
        Initialize download filter.

        Args:
            file_filter: Skip files whose local name matches
            path_filter: Skip folders whose name matches
            file_matcher: Skip files whose local name does not match
            path_matcher: Skip folders whose name does not match
        """
        self.file_filter = file_filter
        self.path_filter = path_filter
        self.file_matcher = file_matcher
        self.path_matcher = path_matcher

    def should_enter(self, folder_name: str) -> bool:
        """
        Check if a directory (and everything below it) should be walked.

        Args:
            folder_name: Local folder name derived from the listing name

        Returns:
            True if the directory passes both folder policies
        """
        if self.path_filter and self.path_filter.search(folder_name):
            logger.debug("directory_filtered_exclude", folder=folder_name)
            return False

        if self.path_matcher and not self.path_matcher.search(folder_name):
            logger.debug("directory_filtered_include", folder=folder_name)
            return False

        return True

    def should_download(self, filename: str) -> bool:
        """
        Check if a file should be downloaded.

        Args:
            filename: Local file name

        Returns:
            True if the file passes both file policies
        """
        if self.file_filter and self.file_filter.search(filename):
            logger.debug("file_filtered_exclude", file=filename)
            return False

        if self.file_matcher and not self.file_matcher.search(filename):
            logger.debug("file_filtered_include", file=filename)
            return False

        return True

    def get_stats(self) -> dict:
        """Get the active policies, as pattern strings."""
        return {
            name: pattern.pattern
            for name, pattern in (
                ("file_filter", self.file_filter),
                ("path_filter", self.path_filter),
                ("file_matcher", self.file_matcher),
                ("path_matcher", self.path_matcher),
            )
            if pattern is not None
        }

    @classmethod
    def from_config(cls, config: DownloadConfig) -> "DownloadFilter":
        """Create a filter from the run configuration."""
        return cls(
            file_filter=config.file_filter,
            path_filter=config.path_filter,
            file_matcher=config.file_matcher,
            path_matcher=config.path_matcher,
        )
