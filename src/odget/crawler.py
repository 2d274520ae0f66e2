"""Crawler that builds the listing tree of an open directory."""

from typing import Optional

from tqdm import tqdm
import structlog

from odget.fetcher import Fetcher
from odget.models import CrawledDirectory, Node, PendingDirectory
from odget.parser import ListingParser

logger = structlog.get_logger()


class Crawler:
    """Fetches listing pages and expands pending directories into a tree."""

    def __init__(
        self,
        fetcher: Fetcher,
        parser: Optional[ListingParser] = None,
        progress: bool = False,
    ):
        """
        Initialize crawler.

        Args:
            fetcher: Open HTTP fetcher
            parser: Listing parser, uses the structural parser if None
            progress: Show a progress bar while crawling
        """
        self.fetcher = fetcher
        self.parser = parser or ListingParser()
        self.progress = progress
        self.pages_fetched = 0

    async def fetch_root(self, url: str) -> CrawledDirectory:
        """
        Fetch and parse the root listing.

        Args:
            url: Root URL of the open directory

        Returns:
            Root directory with its direct entries (subdirectories still pending)
        """
        logger.info("fetching_root", url=url)
        name, children = await self._fetch_listing(url)

        return CrawledDirectory(url=url, name=name, children=children)

    async def expand(self, children: list[Node]) -> list[CrawledDirectory]:
        """
        Expand every top-level PendingDirectory in place.

        Files and directories that are already crawled are left untouched.
        Only one level is expanded; the new directories' own children stay
        pending.

        Args:
            children: Child list of a crawled directory, mutated in place

        Returns:
            The newly crawled directories, in listing order
        """
        expanded = []

        for index, node in enumerate(children):
            if not isinstance(node, PendingDirectory):
                continue

            logger.info("crawling_directory", name=node.name, url=node.url)
            name, grandchildren = await self._fetch_listing(node.url)

            directory = CrawledDirectory(
                url=node.url,
                name=name,
                last_modified=node.last_modified,
                description=node.description,
                children=grandchildren,
            )
            children[index] = directory
            expanded.append(directory)

        return expanded

    async def crawl(self, url: str) -> CrawledDirectory:
        """
        Crawl the whole tree below url, one level at a time.

        Args:
            url: Root URL of the open directory

        Returns:
            Fully expanded root directory
        """
        with tqdm(desc="Crawling directories", unit="dir", disable=not self.progress) as pbar:
            root = await self.fetch_root(url)
            pbar.update(1)

            level = [root]
            depth = 0
            while level:
                next_level = []
                for directory in level:
                    crawled = await self.expand(directory.children)
                    pbar.update(len(crawled))
                    next_level.extend(crawled)

                if next_level:
                    depth += 1
                    logger.debug("crawl_level_expanded", depth=depth, directories=len(next_level))
                level = next_level

        logger.info("crawl_completed", url=url, pages_fetched=self.pages_fetched, depth=depth)
        return root

    async def _fetch_listing(self, url: str) -> tuple[str, list[Node]]:
        html, final_url = await self.fetcher.fetch(url)
        self.pages_fetched += 1
        # hrefs are relative to wherever the server redirected us
        return self.parser.parse(html, final_url)
