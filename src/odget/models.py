"""Data models for odget."""

import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_serializer,
    model_validator,
)

from odget import __version__
from odget.errors import ConfigError

STATE_VERSION = 1
DEFAULT_USER_AGENT = f"odget/{__version__}"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class FileNode(BaseModel):
    """A file link found in a listing."""

    url: str
    name: str
    last_modified: str = ""
    size: str = ""
    description: str = ""


class PendingDirectory(BaseModel):
    """A directory link that was discovered but not fetched yet."""

    url: str
    name: str
    last_modified: str = ""
    description: str = ""


class CrawledDirectory(BaseModel):
    """A directory whose listing page has been fetched and parsed."""

    url: str
    name: str
    last_modified: str = ""
    description: str = ""
    children: list["Node"] = Field(default_factory=list)

    def files(self) -> list[FileNode]:
        """File children in listing order."""
        return [child for child in self.children if isinstance(child, FileNode)]

    def subdirectories(self) -> list["CrawledDirectory"]:
        """Expanded subdirectories in listing order."""
        return [child for child in self.children if isinstance(child, CrawledDirectory)]

    def pending(self) -> list[PendingDirectory]:
        """Subdirectories that were never expanded."""
        return [child for child in self.children if isinstance(child, PendingDirectory)]

    def walk(self) -> Iterator[Union["CrawledDirectory", FileNode, PendingDirectory]]:
        """Yield this directory and every node below it, depth-first."""
        yield self
        for child in self.children:
            if isinstance(child, CrawledDirectory):
                yield from child.walk()
            else:
                yield child


Node = Union[FileNode, PendingDirectory, CrawledDirectory]

CrawledDirectory.model_rebuild()

_NODE_TAGS = {
    FileNode: "File",
    PendingDirectory: "PendingDirectory",
    CrawledDirectory: "CrawledDirectory",
}


def dump_node(node: Node) -> dict[str, Any]:
    """Serialize a node as an externally tagged dict ({"File": {...}})."""
    if isinstance(node, CrawledDirectory):
        body = node.model_dump(exclude={"children"})
        body["children"] = [dump_node(child) for child in node.children]
    else:
        body = node.model_dump()
    return {_NODE_TAGS[type(node)]: body}


def load_node(data: Any) -> Node:
    """Inverse of dump_node. Raises ValueError on malformed input."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Expected a single-key tagged node, got {type(data).__name__}")

    ((tag, body),) = data.items()
    if not isinstance(body, dict):
        raise ValueError(f"Node body for {tag!r} must be an object")

    if tag == "File":
        return FileNode.model_validate(body)
    if tag == "PendingDirectory":
        return PendingDirectory.model_validate(body)
    if tag == "CrawledDirectory":
        body = dict(body)
        children = body.pop("children", [])
        if not isinstance(children, list):
            raise ValueError("CrawledDirectory children must be a list")
        return CrawledDirectory(**body, children=[load_node(child) for child in children])

    raise ValueError(f"Unknown node tag: {tag!r}")


class CrawlStatus(str, Enum):
    """How far the crawl of the listing tree got."""

    NONE = "None"
    PARTIAL = "Partial"
    COMPLETE = "Complete"


class CrawlingState(BaseModel):
    """Crawl progress: "None", {"Partial": node} or {"Complete": node} on disk."""

    status: CrawlStatus = CrawlStatus.NONE
    root: Optional[CrawledDirectory] = None

    @model_validator(mode="before")
    @classmethod
    def _from_tagged(cls, data: Any) -> Any:
        if data is None or data == CrawlStatus.NONE.value:
            return {"status": CrawlStatus.NONE}

        if isinstance(data, dict) and len(data) == 1:
            ((tag, node),) = data.items()
            if tag in (CrawlStatus.PARTIAL.value, CrawlStatus.COMPLETE.value):
                return {"status": tag, "root": load_node(node)}

        return data

    @model_serializer
    def _to_tagged(self) -> Union[str, dict[str, Any]]:
        if self.status is CrawlStatus.NONE or self.root is None:
            return CrawlStatus.NONE.value
        return {self.status.value: dump_node(self.root)}

    @property
    def is_complete(self) -> bool:
        return self.status is CrawlStatus.COMPLETE and self.root is not None


class StateStore(BaseModel):
    """Persisted crawl state and the URLs already downloaded."""

    version: int = STATE_VERSION
    created_at: datetime = Field(default_factory=utc_now)
    last_modified: datetime = Field(default_factory=utc_now)
    crawling_state: CrawlingState = Field(default_factory=CrawlingState)
    downloaded_urls: list[str] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def _known_version(cls, value: int) -> int:
        if value != STATE_VERSION:
            raise ValueError(f"Unsupported state version {value} (expected {STATE_VERSION})")
        return value

    @property
    def root(self) -> Optional[CrawledDirectory]:
        return self.crawling_state.root

    def touch(self) -> None:
        """Refresh the last-modified timestamp."""
        self.last_modified = utc_now()

    def mark_complete(self, root: CrawledDirectory) -> None:
        """Record a finished crawl."""
        self.crawling_state = CrawlingState(status=CrawlStatus.COMPLETE, root=root)
        self.touch()


class DownloadedSet:
    """Insertion-ordered set of file URLs that finished downloading."""

    def __init__(self, urls: Iterable[str] = ()):
        self._urls: dict[str, None] = dict.fromkeys(urls)

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def add(self, url: str) -> None:
        self._urls[url] = None

    def to_list(self) -> list[str]:
        return list(self._urls)


class LimitCounters(BaseModel):
    """Counters shared by the whole download walk."""

    recursion_depth: int = 0
    files_downloaded: int = 0
    files_skipped: int = 0


class DownloadConfig(BaseModel):
    """Configuration for a crawl-and-download run."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Root URL of the open directory")
    destination: Path = Field(default_factory=Path.cwd, description="Local download root")
    no_download: bool = Field(default=False, description="Crawl only, skip the download phase")
    limit: int = Field(default=0, ge=0, description="Maximum files to download (0 = unlimited)")
    skip: int = Field(default=0, ge=0, description="Eligible files to skip first (0 = none)")
    recursion_depth: int = Field(
        default=0, ge=0, description="Maximum directories to enter (0 = unlimited)"
    )
    file_filter: Optional[re.Pattern] = Field(default=None, description="Skip files matching")
    path_filter: Optional[re.Pattern] = Field(default=None, description="Skip folders matching")
    file_matcher: Optional[re.Pattern] = Field(
        default=None, description="Skip files not matching"
    )
    path_matcher: Optional[re.Pattern] = Field(
        default=None, description="Skip folders not matching"
    )
    state_path: Optional[Path] = Field(default=None, description="Resumable state file")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent string")
    timeout: Optional[int] = Field(default=None, ge=1, description="Request timeout in seconds")
    progress: bool = Field(default=False, description="Show progress bars")

    @field_validator("url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"not an absolute http(s) URL: {value!r}")
        return value


def build_config(**options: Any) -> DownloadConfig:
    """
    Build a DownloadConfig, turning validation failures into ConfigError.

    Args:
        **options: DownloadConfig fields

    Returns:
        Validated, immutable configuration

    Raises:
        ConfigError: If any option is invalid
    """
    try:
        return DownloadConfig(**options)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
