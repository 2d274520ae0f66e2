"""Download engine: filtered depth-first walk of a crawled tree."""

from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from tqdm import tqdm
import structlog

from odget.errors import FilesystemError
from odget.fetcher import Fetcher
from odget.filters import DownloadFilter
from odget.models import (
    CrawledDirectory,
    DownloadConfig,
    DownloadedSet,
    FileNode,
    LimitCounters,
    PendingDirectory,
)
from odget.scheduler import TraversalTask, Worklist
from odget.urls import last_component, last_segment

logger = structlog.get_logger()


class Downloader:
    """Walks a crawled tree and downloads the files that pass every policy."""

    def __init__(
        self,
        config: DownloadConfig,
        fetcher: Fetcher,
        counters: Optional[LimitCounters] = None,
        downloaded: Optional[DownloadedSet] = None,
    ):
        """
        Initialize downloader.

        Args:
            config: Run configuration (destination, limits, filters)
            fetcher: Open HTTP fetcher
            counters: Shared limit counters, fresh if None
            downloaded: URLs already downloaded, updated after every success
        """
        self.config = config
        self.fetcher = fetcher
        self.filter = DownloadFilter.from_config(config)
        self.counters = counters or LimitCounters()
        self.downloaded = downloaded if downloaded is not None else DownloadedSet()
        self.worklist = Worklist()
        self._pbar: Optional[tqdm] = None

    async def download_tree(self, root: CrawledDirectory) -> LimitCounters:
        """
        Download every eligible file below root.

        Directories are walked depth-first in listing order; within a
        directory, files are handled before subdirectories.

        Args:
            root: Crawled root directory

        Returns:
            The limit counters after the walk

        Raises:
            FetchError: If a file request fails
            FilesystemError: If a folder or file cannot be written
        """
        if self.config.no_download:
            logger.info("download_disabled")
            return self.counters

        logger.info(
            "download_started",
            url=root.url,
            destination=str(self.config.destination),
            limit=self.config.limit,
            skip=self.config.skip,
            recursion_depth=self.config.recursion_depth,
            already_downloaded=len(self.downloaded),
            **self.filter.get_stats(),
        )

        self.worklist.push(TraversalTask(root, self.config.destination, 0))

        with tqdm(
            total=self.config.limit or None,
            desc="Downloading files",
            unit="file",
            disable=not self.config.progress,
        ) as pbar:
            self._pbar = pbar
            try:
                while not self.worklist.is_empty():
                    task = self.worklist.pop()

                    if task.depth > 0 and self._limits_reached():
                        self.worklist.clear()
                        break

                    await self._visit(task)
            finally:
                self._pbar = None

        logger.info(
            "download_completed",
            files_downloaded=self.counters.files_downloaded,
            files_skipped=self.counters.files_skipped,
            directories=self.counters.recursion_depth,
        )
        return self.counters

    async def _visit(self, task: TraversalTask) -> None:
        directory = task.directory
        self.counters.recursion_depth += 1

        folder_name = last_component(directory.name)
        if not self.filter.should_enter(folder_name):
            return

        folder = task.parent_folder / folder_name if folder_name else task.parent_folder
        try:
            await aiofiles.os.makedirs(folder, exist_ok=True)
        except OSError as e:
            raise FilesystemError(folder, f"Cannot create directory: {e}") from e

        for node in directory.files():
            if not await self._handle_file(node, folder):
                return

        subdirectories = []
        for node in directory.children:
            if isinstance(node, PendingDirectory):
                logger.warning("directory_not_crawled", name=node.name, url=node.url)
            elif isinstance(node, CrawledDirectory):
                subdirectories.append(node)

        self.worklist.push_children(subdirectories, folder, task.depth + 1)

    async def _handle_file(self, node: FileNode, folder: Path) -> bool:
        """Download one file if it passes every policy; False once the limit is hit."""
        if node.url in self.downloaded:
            logger.debug("file_already_downloaded", url=node.url)
            return True

        if self._file_limit_reached():
            logger.info("file_limit_reached", files=self.counters.files_downloaded)
            return False

        filename = last_segment(node.url) or node.name
        if not self.filter.should_download(filename):
            return True

        if self.counters.files_skipped < self.config.skip:
            self.counters.files_skipped += 1
            logger.debug("file_skipped", file=filename, skipped=self.counters.files_skipped)
            return True

        await self._download(node, folder, filename)

        self.downloaded.add(node.url)
        self.counters.files_downloaded += 1
        if self._pbar is not None:
            self._pbar.update(1)
        return True

    async def _download(self, node: FileNode, folder: Path, fallback_name: str) -> None:
        logger.info("downloading_file", file=fallback_name, url=node.url)

        async with self.fetcher.stream(node.url) as response:
            filename = last_segment(str(response.url)) or fallback_name
            path = folder / filename
            written = 0

            try:
                async with aiofiles.open(path, mode="ab") as handle:
                    async for chunk in self.fetcher.iter_body(response, node.url):
                        await handle.write(chunk)
                        written += len(chunk)
            except OSError as e:
                raise FilesystemError(path, f"Cannot write file: {e}") from e

        logger.info("file_downloaded", url=node.url, path=str(path), bytes=written)

    def _file_limit_reached(self) -> bool:
        return bool(self.config.limit) and self.counters.files_downloaded >= self.config.limit

    def _limits_reached(self) -> bool:
        if (
            self.config.recursion_depth
            and self.counters.recursion_depth >= self.config.recursion_depth
        ):
            logger.info("recursion_limit_reached", depth=self.counters.recursion_depth)
            return True

        if self._file_limit_reached():
            logger.info("file_limit_reached", files=self.counters.files_downloaded)
            return True

        return False
