"""Error types raised by odget."""

from pathlib import Path
from typing import Optional, Union


class OdGetError(Exception):
    """Base class for every error odget raises."""


class ConfigError(OdGetError, ValueError):
    """Invalid URL, regex or number supplied at startup."""


class FetchError(OdGetError):
    """A request failed or the server answered with a non-2xx status."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"{message} ({url})")


class ParseError(OdGetError):
    """A page does not look like an "Index of" listing."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        if url:
            message = f"{message} ({url})"
        super().__init__(message)


class FilesystemError(OdGetError):
    """Creating a directory or writing a file failed."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        super().__init__(f"{message} ({self.path})")
