"""URL helpers for listing links and local names."""

from typing import Optional
from urllib.parse import unquote, urlsplit, urlunsplit


def strip_trailing_empty_segments(url: str) -> str:
    """Drop trailing empty path segments ("a/b.txt//" -> "a/b.txt").

    Some servers emit doubled slashes after file links.
    """
    parts = urlsplit(url)
    path = parts.path.rstrip("/") or "/"
    return urlunsplit(parts._replace(path=path))


def last_segment(url: str) -> Optional[str]:
    """Return the percent-decoded last path segment, or None if it is empty."""
    segment = urlsplit(url).path.split("/")[-1]
    name = unquote(segment).replace("/", "_").replace("\\", "_")
    if name in ("", ".", ".."):
        return None
    return name


def last_component(name: str) -> str:
    """Last non-empty component of a listing name ("/data/sub/" -> "sub")."""
    components = [part for part in name.split("/") if part]
    if not components:
        return ""
    component = components[-1]
    if component in (".", ".."):
        return ""
    return component


def base_directory(url: str) -> str:
    """The directory part of a URL: everything up to the last slash of its path."""
    parts = urlsplit(url)
    path = parts.path or "/"
    path = path[: path.rfind("/") + 1]
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def is_below(url: str, base_url: str) -> bool:
    """Check that url lives strictly below the directory of base_url."""
    base = urlsplit(base_directory(base_url))
    target = urlsplit(url)

    if (target.scheme, target.netloc) != (base.scheme, base.netloc):
        return False

    return target.path.startswith(base.path) and len(target.path) > len(base.path)
