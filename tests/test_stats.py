"""Tests for tree statistics."""

import pytest

from odget.models import CrawledDirectory, FileNode, PendingDirectory
from odget.stats import TreeStats, parse_size


@pytest.mark.parametrize(
    "size,expected",
    [
        ("123", 123),
        (" 12K", 12 * 1024),
        ("1.5M", int(1.5 * 1024**2)),
        ("2G", 2 * 1024**3),
        ("512 kB", 512 * 1024),
        ("  - ", None),
        ("", None),
        ("unknown", None),
    ],
)
def test_parse_size(size, expected):
    assert parse_size(size) == expected


@pytest.fixture
def tree():
    return CrawledDirectory(
        url="http://example.com/pub/",
        name="/pub",
        children=[
            CrawledDirectory(
                url="http://example.com/pub/isos/",
                name="/pub/isos",
                children=[
                    FileNode(url="http://example.com/pub/isos/a.iso", name="a.iso", size="1G"),
                    FileNode(url="http://example.com/pub/isos/b.iso", name="b.iso", size="1G"),
                ],
            ),
            PendingDirectory(url="http://example.com/pub/later/", name="later/"),
            FileNode(url="http://example.com/pub/README", name="README", size="512"),
            FileNode(url="http://example.com/pub/notes.txt", name="notes.txt", size="?"),
        ],
    )


class TestTreeStats:
    """Test crawled tree statistics."""

    def test_compute(self, tree):
        stats = TreeStats.from_tree(tree).compute()

        assert stats["directories"] == 2
        assert stats["files"] == 4
        assert stats["pending_directories"] == 1
        assert stats["total_bytes"] == 2 * 1024**3 + 512
        assert stats["unknown_sizes"] == 1
        assert stats["top_extensions"][0] == {"extension": "iso", "count": 2}
        assert {"extension": "(none)", "count": 1} in stats["top_extensions"]

    def test_compute_is_cached(self, tree):
        analyzer = TreeStats(tree)

        assert analyzer.compute() is analyzer.compute()

    def test_format_summary(self, tree):
        summary = TreeStats(tree).format_summary()

        assert "Index of /pub" in summary
        assert "Directories: 2" in summary
        assert "Files: 4" in summary
        assert "Total Size: 2.00 GB" in summary
        assert "Uncrawled Directories: 1" in summary
        assert "  - iso: 2 files" in summary

    def test_extension_from_decoded_name(self):
        root = CrawledDirectory(
            url="http://example.com/",
            name="/",
            children=[
                FileNode(url="http://example.com/report%2Etar", name="report.tar", size="1"),
                FileNode(url="http://example.com/b.tar", name="b.tar", size="1"),
            ],
        )

        stats = TreeStats(root).compute()

        assert stats["top_extensions"] == [{"extension": "tar", "count": 2}]

    def test_empty_tree(self):
        root = CrawledDirectory(url="http://example.com/", name="/")
        summary = TreeStats(root).format_summary()

        assert "Files: 0" in summary
        assert "Total Size: 0.00 B" in summary
        assert "Top Extensions" not in summary
