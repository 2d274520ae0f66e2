"""Run driver: state loading, crawl, download, persistence."""

from typing import Optional

from pydantic import BaseModel
import structlog

from odget.crawler import Crawler
from odget.downloader import Downloader
from odget.fetcher import Fetcher
from odget.models import (
    CrawledDirectory,
    DownloadConfig,
    DownloadedSet,
    LimitCounters,
    StateStore,
)
from odget.parser import ListingParser
from odget.state import StateManager

logger = structlog.get_logger()


class RunResult(BaseModel):
    """Outcome of a completed run."""

    root: CrawledDirectory
    counters: LimitCounters
    store: StateStore
    crawled: bool


async def run(config: DownloadConfig, fetcher: Optional[Fetcher] = None) -> RunResult:
    """
    Crawl (unless a complete crawl is stored) and download.

    With ``config.state_path`` set, the state store is loaded first and
    persisted after the crawl and again after the download phase, whether
    it succeeded or failed, so a rerun resumes without re-downloading.

    Args:
        config: Validated run configuration
        fetcher: Optional fetcher, one is created from config if None

    Returns:
        RunResult with the tree, counters and final state
    """
    manager = StateManager.from_path(config.state_path) if config.state_path else None
    store = await manager.load() if manager else StateStore()

    if fetcher is None:
        fetcher = Fetcher(user_agent=config.user_agent, timeout=config.timeout)

    async with fetcher:
        crawled = False
        if store.crawling_state.is_complete:
            root = store.root
            logger.info("crawl_restored", url=root.url)
            if root.url != config.url:
                logger.warning("state_url_mismatch", state_url=root.url, provided_url=config.url)
        else:
            crawler = Crawler(fetcher, parser=ListingParser(fast=True), progress=config.progress)
            root = await crawler.crawl(config.url)
            crawled = True

            if manager:
                manager.mark_complete(store, root)
                await manager.persist(store)
            else:
                store.mark_complete(root)

        downloaded = DownloadedSet(store.downloaded_urls)
        downloader = Downloader(config, fetcher, downloaded=downloaded)

        try:
            counters = await downloader.download_tree(root)
        except Exception as e:
            logger.error("download_aborted", error=str(e), downloaded=len(downloaded))
            raise
        finally:
            store.downloaded_urls = downloaded.to_list()
            if manager:
                await manager.persist(store)

    return RunResult(root=root, counters=counters, store=store, crawled=crawled)
