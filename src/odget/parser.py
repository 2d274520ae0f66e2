"""Parsing of "Index of" listing pages (Apache and nginx autoindex)."""

import html as html_entities
import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
import structlog

from odget.errors import ParseError
from odget.models import FileNode, Node, PendingDirectory
from odget.urls import is_below, strip_trailing_empty_segments

logger = structlog.get_logger()

HEADING_PREFIX = "Index of "
DIRECTORY_SIZE = "  - "
PARENT_LABEL = "Parent Directory"

# Literal Apache row markup; no group may cross a tag, so a match stays in one row
RX_HEADING = re.compile(r"<h1>Index of ([^<]+)</h1>")
RX_ROW = re.compile(
    r'</td><td><a href="([^"]+)">([^<]+)</a></td><td align="right">([^<]+?)  </td>'
    r'<td align="right">([^<]+)</td><td>([^<]*)</td></tr>'
)
RX_DATA_ROW = re.compile(r"<tr><td")
RX_PARENT_ROW = re.compile(r">Parent Directory</a>")


class ListingParser:
    """Turns one listing page into its directory name and entries."""

    def __init__(self, fast: bool = False):
        """
        Initialize the parser.

        Args:
            fast: Try the literal Apache row pattern before the DOM walk
        """
        self.fast = fast

    def parse(self, html: str, base_url: str) -> tuple[str, list[Node]]:
        """
        Parse a listing page.

        Args:
            html: Raw HTML content
            base_url: URL the page was served from, used to resolve hrefs

        Returns:
            Tuple of (directory name, entries in listing order)

        Raises:
            ParseError: If the page has no "Index of" heading or a malformed row
        """
        if self.fast:
            result = self._parse_fast(html, base_url)
            if result is not None:
                return result

        soup = BeautifulSoup(html, "lxml")

        heading = self._find_heading(soup)
        if heading is None:
            raise ParseError("Page has no 'Index of' heading", url=base_url)
        name = heading.get_text().strip()[len(HEADING_PREFIX) :]

        table = heading.find_next("table")
        if table is not None:
            nodes = self._parse_table(table, base_url)
        else:
            pre = heading.find_next("pre")
            if pre is None:
                raise ParseError("No listing table or <pre> block after heading", url=base_url)
            nodes = self._parse_pre(pre, base_url)

        logger.debug("listing_parsed", url=base_url, name=name, entries=len(nodes))
        return name, nodes

    def _find_heading(self, soup: BeautifulSoup) -> Optional[Tag]:
        for heading in soup.find_all("h1"):
            if heading.get_text().strip().startswith(HEADING_PREFIX):
                return heading
        return None

    def _parse_table(self, table: Tag, base_url: str) -> list[Node]:
        """Apache HTMLTable layout: icon, name, last modified, size, description."""
        nodes = []

        for row in table.find_all("tr"):
            cells = row.find_all("td", recursive=False)
            if not cells:
                # Header and <hr> rows only carry <th> cells
                continue

            if len(cells) < 4:
                raise ParseError(f"Listing row has {len(cells)} cells, expected 4 or more", url=base_url)

            name_cell, date_cell, size_cell, description_cell = cells[-4:]
            anchor = name_cell.find("a", href=True)
            if anchor is None:
                raise ParseError("Listing row has no link", url=base_url)

            label = anchor.get_text()
            if label.strip() == PARENT_LABEL:
                continue

            node = self._make_node(
                base_url,
                href=anchor["href"],
                name=label,
                last_modified=date_cell.get_text().strip(),
                size=size_cell.get_text(),
                description=description_cell.get_text().strip(),
            )
            if node is not None:
                nodes.append(node)

        return nodes

    def _parse_pre(self, pre: Tag, base_url: str) -> list[Node]:
        """Preformatted layout: a link followed by "date time size [description]"."""
        nodes = []

        for anchor in pre.find_all("a", href=True):
            href = anchor["href"]
            label = anchor.get_text()
            if href.startswith("?") or href == "../" or label.strip() == PARENT_LABEL:
                continue

            tail = anchor.next_sibling
            text = str(tail) if isinstance(tail, NavigableString) else ""
            fields = text.split("\n", 1)[0].split()
            if len(fields) < 3:
                raise ParseError(f"Cannot read date and size after link {href!r}", url=base_url)

            size = fields[2]
            node = self._make_node(
                base_url,
                href=href,
                name=label,
                last_modified=" ".join(fields[:2]),
                size=DIRECTORY_SIZE if size == "-" else size,
                description=" ".join(fields[3:]),
            )
            if node is not None:
                nodes.append(node)

        return nodes

    def _parse_fast(self, html: str, base_url: str) -> Optional[tuple[str, list[Node]]]:
        """Literal pattern match; None when the page doesn't fit it exactly."""
        heading = RX_HEADING.search(html)
        if heading is None:
            return None

        matches = list(RX_ROW.finditer(html))
        expected = len(RX_DATA_ROW.findall(html)) - len(RX_PARENT_ROW.findall(html))
        if expected <= 0 or len(matches) != expected:
            logger.debug("fast_parse_fallback", url=base_url, matched=len(matches), rows=expected)
            return None

        nodes = []
        for match in matches:
            href, name, last_modified, size, description = (
                html_entities.unescape(group) for group in match.groups()
            )
            node = self._make_node(
                base_url,
                href=href,
                name=name,
                last_modified=last_modified.strip(),
                size=size,
                description=description.strip(),
            )
            if node is not None:
                nodes.append(node)

        name = html_entities.unescape(heading.group(1)).strip()
        logger.debug("listing_parsed", url=base_url, name=name, entries=len(nodes), fast=True)
        return name, nodes

    def _make_node(
        self,
        base_url: str,
        href: str,
        name: str,
        last_modified: str,
        size: str,
        description: str,
    ) -> Optional[Node]:
        url = urljoin(base_url, href)

        if size == DIRECTORY_SIZE:
            if not is_below(url, base_url):
                logger.debug("directory_link_outside_listing", url=url, base_url=base_url)
                return None

            return PendingDirectory(
                url=url,
                name=name,
                last_modified=last_modified,
                description=description,
            )

        return FileNode(
            url=strip_trailing_empty_segments(url),
            name=name,
            last_modified=last_modified,
            size=size,
            description=description,
        )
