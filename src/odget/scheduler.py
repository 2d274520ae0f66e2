"""Worklist of pending directory traversals."""

from collections import deque
from pathlib import Path
from typing import Iterable, NamedTuple, Optional
import structlog

from odget.models import CrawledDirectory

logger = structlog.get_logger()


class TraversalTask(NamedTuple):
    """One directory waiting to be walked."""

    directory: CrawledDirectory
    parent_folder: Path
    depth: int


class Worklist:
    """LIFO stack of traversal tasks giving a depth-first, listing-ordered walk."""

    def __init__(self):
        self.tasks: deque[TraversalTask] = deque()

    def push(self, task: TraversalTask) -> None:
        self.tasks.append(task)

    def push_children(
        self,
        directories: Iterable[CrawledDirectory],
        parent_folder: Path,
        depth: int,
    ) -> None:
        """
        Queue subdirectories so they pop in listing order.

        Args:
            directories: Subdirectories in listing order
            parent_folder: Local folder of their parent
            depth: Depth of the subdirectories (root is 0)
        """
        for directory in reversed(list(directories)):
            self.tasks.append(TraversalTask(directory, parent_folder, depth))
            logger.debug("directory_queued", name=directory.name, depth=depth, queue_size=len(self.tasks))

    def pop(self) -> Optional[TraversalTask]:
        """Get the next task (most recently pushed first)."""
        if self.tasks:
            return self.tasks.pop()
        return None

    def clear(self) -> None:
        self.tasks.clear()

    def size(self) -> int:
        return len(self.tasks)

    def is_empty(self) -> bool:
        """Check if worklist is empty."""
        return len(self.tasks) == 0
