"""Pytest configuration and fixtures."""

from collections import Counter
from typing import Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

APACHE_HEAD = """<!DOCTYPE HTML PUBLIC "-//W3C//DTD HTML 3.2 Final//EN">
<html>
 <head>
  <title>Index of {path}</title>
 </head>
 <body>
<h1>Index of {path}</h1>
  <table>
   <tr><th valign="top"><img src="/icons/blank.gif" alt="[ICO]"></th><th><a href="?C=N;O=D">Name</a></th><th><a href="?C=M;O=A">Last modified</a></th><th><a href="?C=S;O=A">Size</a></th><th><a href="?C=D;O=A">Description</a></th></tr>
   <tr><th colspan="5"><hr></th></tr>
<tr><td valign="top"><img src="/icons/back.gif" alt="[PARENTDIR]"></td><td><a href="/">Parent Directory</a>       </td><td>&nbsp;</td><td align="right">  - </td><td>&nbsp;</td></tr>
"""

APACHE_ROW = (
    '<tr><td valign="top"><img src="/icons/{icon}.gif" alt="[{alt}]"></td>'
    '<td><a href="{href}">{name}</a></td>'
    '<td align="right">{date}  </td><td align="right">{size}</td><td>{description}</td></tr>\n'
)

APACHE_TAIL = """   <tr><th colspan="5"><hr></th></tr>
</table>
<address>Apache/2.4.41 (Ubuntu) Server at example.com Port 80</address>
</body></html>
"""


def apache_listing(path: str, entries: list) -> str:
    """
    Render an Apache "Index of" page.

    Args:
        path: Directory path shown in the heading
        entries: names, or (name, size) pairs; bare names ending in "/"
            are directories and get the "  - " size placeholder
    """
    rows = []
    for entry in entries:
        if isinstance(entry, tuple):
            name, size = entry
        else:
            name = entry
            size = "  - " if name.endswith("/") else "123"
        is_dir = size == "  - "
        rows.append(
            APACHE_ROW.format(
                icon="folder" if is_dir else "text",
                alt="DIR" if is_dir else "TXT",
                href=name,
                name=name,
                date="2021-03-04 10:00",
                size=size,
                description="&nbsp;",
            )
        )
    return APACHE_HEAD.format(path=path) + "".join(rows) + APACHE_TAIL


Route = Union[str, bytes, int, tuple]


class ListingServer:
    """Local HTTP server serving listing pages and file bodies.

    Route values: str is served as HTML, bytes as a file body, an int as a
    bare status code, and ("redirect", target) as a 302.
    """

    def __init__(self, routes: dict[str, Route]):
        self.routes = routes
        self.hits: Counter = Counter()
        app = web.Application()
        app.router.add_route("GET", "/{tail:.*}", self._handle)
        self.server = TestServer(app)

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        self.hits[request.path] += 1
        route = self.routes.get(request.path)

        if route is None:
            raise web.HTTPNotFound()
        if isinstance(route, tuple):
            raise web.HTTPFound(route[1])
        if isinstance(route, int):
            return web.Response(status=route, text="error")
        if isinstance(route, bytes):
            return web.Response(body=route, content_type="application/octet-stream")
        return web.Response(text=route, content_type="text/html")

    async def start(self) -> None:
        await self.server.start_server()

    async def close(self) -> None:
        await self.server.close()

    def url(self, path: str = "/") -> str:
        return str(self.server.make_url(path))

    def file_hits(self) -> int:
        """Requests for anything that isn't a listing page."""
        return sum(count for path, count in self.hits.items() if not path.endswith("/"))


@pytest_asyncio.fixture
async def listing_server():
    """Factory fixture starting a ListingServer for a route table."""
    servers = []

    async def start(routes: dict[str, Route]) -> ListingServer:
        server = ListingServer(routes)
        await server.start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        await server.close()


@pytest.fixture
def data_site():
    """Routes for /data/ with three files and a subdirectory holding one more."""
    return {
        "/data/": apache_listing("/data", ["sub/", "a.txt", "b.txt", "c.txt"]),
        "/data/a.txt": b"alpha",
        "/data/b.txt": b"bravo",
        "/data/c.txt": b"charlie",
        "/data/sub/": apache_listing("/data/sub", ["d.txt"]),
        "/data/sub/d.txt": b"delta",
    }


@pytest.fixture
def sample_listing():
    """Scenario page: one directory row and one file row."""
    return apache_listing("/data/", ["sub/", ("file.csv", "123")])


@pytest.fixture
def sample_url():
    """Sample base URL for testing."""
    return "http://example.com/data/"


@pytest.fixture
def make_listing():
    """The apache_listing page builder."""
    return apache_listing
