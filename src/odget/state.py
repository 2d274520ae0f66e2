"""State store management for resumable downloads."""

import json
from pathlib import Path
from typing import Union

import structlog

from odget.errors import FilesystemError
from odget.models import CrawledDirectory, StateStore
from odget.storage import LocalFileStorage, StateStorage

logger = structlog.get_logger()


class StateManager:
    """Loads and persists the state store of a run."""

    def __init__(self, storage: StateStorage):
        """
        Initialize state manager.

        Args:
            storage: Storage backend for the state document
        """
        self.storage = storage

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "StateManager":
        """Create a state manager backed by a local JSON file."""
        return cls(LocalFileStorage(path))

    async def load(self) -> StateStore:
        """
        Load the state store.

        A missing, unreadable or malformed document is never fatal: a fresh
        store is returned instead.

        Returns:
            The stored state, or a fresh StateStore
        """
        if not await self.storage.exists():
            logger.info("state_not_found", action="start_fresh")
            return StateStore()

        try:
            data = json.loads(await self.storage.read())
            store = StateStore.model_validate(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning("state_unreadable", error=str(e), action="start_fresh")
            return StateStore()

        logger.info(
            "state_loaded",
            crawling_state=store.crawling_state.status.value,
            downloaded=len(store.downloaded_urls),
            created_at=store.created_at.isoformat(),
        )
        return store

    async def persist(self, store: StateStore) -> None:
        """
        Refresh the timestamp and overwrite the stored document.

        Args:
            store: State to write

        Raises:
            FilesystemError: If the document cannot be written
        """
        store.touch()
        data = json.dumps(store.model_dump(mode="json"), indent=2, ensure_ascii=False)

        try:
            await self.storage.write(data + "\n")
        except OSError as e:
            raise FilesystemError(getattr(self.storage, "path", ""), f"Cannot write state: {e}") from e

        logger.info(
            "state_persisted",
            crawling_state=store.crawling_state.status.value,
            downloaded=len(store.downloaded_urls),
        )

    def mark_complete(self, store: StateStore, root: CrawledDirectory) -> None:
        """Record a finished crawl in the store."""
        store.mark_complete(root)
        logger.info("crawl_marked_complete", url=root.url)
