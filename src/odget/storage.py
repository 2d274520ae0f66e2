"""Storage backends for state persistence."""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os
import structlog

logger = structlog.get_logger()


class StateStorage(ABC):
    """Abstract storage backend for the state file."""

    @abstractmethod
    async def read(self) -> str:
        """
        Read the whole state document.

        Returns:
            Stored text
        """
        pass

    @abstractmethod
    async def write(self, data: str) -> None:
        """
        Replace the stored document with data.

        Args:
            data: Full serialized state
        """
        pass

    @abstractmethod
    async def exists(self) -> bool:
        """
        Check if a state document exists.

        Returns:
            True if state exists, False otherwise
        """
        pass


class LocalFileStorage(StateStorage):
    """Local filesystem storage backend."""

    def __init__(self, path: Union[str, Path]):
        """
        Initialize local file storage.

        Args:
            path: Local file path
        """
        self.path = Path(path)
        logger.debug("local_storage_init", path=str(self.path))

    async def read(self) -> str:
        """Read the file as UTF-8 text."""
        async with aiofiles.open(self.path, mode="r", encoding="utf-8") as f:
            return await f.read()

    async def write(self, data: str) -> None:
        """Write to a sibling temp file, then move it over the target."""
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)

        tmp_path = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
            await f.write(data)

        await aiofiles.os.replace(tmp_path, self.path)
        logger.debug("local_storage_write", path=str(self.path), bytes=len(data))

    async def exists(self) -> bool:
        """Check if file exists."""
        return self.path.exists()
