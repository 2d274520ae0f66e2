"""Statistics for a crawled listing tree."""

import re
from collections import Counter
from typing import Any, Optional
import structlog

from odget.models import CrawledDirectory, FileNode, PendingDirectory
from odget.urls import last_segment

logger = structlog.get_logger()

RX_SIZE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?)i?B?\s*$", re.IGNORECASE)
SIZE_UNITS = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


def parse_size(size: str) -> Optional[int]:
    """
    Parse a listing size string such as "123", " 12K" or "1.5M".

    Returns:
        Size in bytes, or None if the string isn't a size
    """
    match = RX_SIZE.match(size)
    if match is None:
        return None
    number, unit = match.groups()
    return int(float(number) * SIZE_UNITS[unit.upper()])


class TreeStats:
    """Computes statistics for a crawled tree."""

    def __init__(self, root: CrawledDirectory):
        """
        Initialize stats analyzer.

        Args:
            root: Root of the crawled tree
        """
        self.root = root
        self._stats_cache: dict[str, Any] = {}

    @classmethod
    def from_tree(cls, root: CrawledDirectory) -> "TreeStats":
        return cls(root)

    def compute(self) -> dict[str, Any]:
        """
        Compute all statistics.

        Returns:
            Dictionary with counts and summed sizes
        """
        if self._stats_cache:
            return self._stats_cache

        directories = 0
        files = 0
        pending = 0
        total_bytes = 0
        unknown_sizes = 0
        extensions: Counter = Counter()

        for node in self.root.walk():
            if isinstance(node, CrawledDirectory):
                directories += 1
            elif isinstance(node, PendingDirectory):
                pending += 1
            elif isinstance(node, FileNode):
                files += 1
                size = parse_size(node.size)
                if size is None:
                    unknown_sizes += 1
                else:
                    total_bytes += size
                name = last_segment(node.url) or node.name
                extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
                extensions[extension] += 1

        self._stats_cache = {
            "directories": directories,
            "files": files,
            "pending_directories": pending,
            "total_bytes": total_bytes,
            "unknown_sizes": unknown_sizes,
            "top_extensions": [
                {"extension": ext or "(none)", "count": count}
                for ext, count in extensions.most_common(10)
            ],
        }

        logger.debug("tree_stats_computed", directories=directories, files=files)
        return self._stats_cache

    def format_summary(self) -> str:
        """
        Format stats as human-readable summary.

        Returns:
            Formatted string with statistics
        """
        stats = self.compute()

        lines = [
            "=" * 60,
            f"Index of {self.root.name}",
            "=" * 60,
            "",
            f"Directories: {stats['directories']:,}",
            f"Files: {stats['files']:,}",
            f"Total Size: {self._format_bytes(stats['total_bytes'])}",
        ]

        if stats["unknown_sizes"]:
            lines.append(f"  ({stats['unknown_sizes']:,} files without a readable size)")
        if stats["pending_directories"]:
            lines.append(f"Uncrawled Directories: {stats['pending_directories']:,}")

        if stats["top_extensions"]:
            lines.extend(["", "Top Extensions:"])
            for item in stats["top_extensions"][:5]:
                lines.append(f"  - {item['extension']}: {item['count']} files")

        lines.extend(["", "=" * 60])
        return "\n".join(lines)

    def _format_bytes(self, size: float) -> str:
        """Format bytes as human-readable string."""
        for unit in ["B", "KB", "MB", "GB"]:
            if size < 1024.0:
                return f"{size:.2f} {unit}"
            size /= 1024.0
        return f"{size:.2f} TB"
