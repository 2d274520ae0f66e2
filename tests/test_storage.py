"""Tests for state storage and the state manager."""

import json

import pytest

from odget.errors import FilesystemError
from odget.models import CrawledDirectory, CrawlStatus, FileNode, StateStore
from odget.state import StateManager
from odget.storage import LocalFileStorage


@pytest.fixture
def state_file(tmp_path):
    """Temporary state file path."""
    return tmp_path / "state.json"


@pytest.fixture
def sample_root():
    return CrawledDirectory(
        url="http://example.com/data/",
        name="/data/",
        children=[FileNode(url="http://example.com/data/a.txt", name="a.txt", size="5")],
    )


@pytest.mark.asyncio
class TestLocalFileStorage:
    """Test local filesystem storage."""

    async def test_exists(self, state_file):
        storage = LocalFileStorage(state_file)
        assert not await storage.exists()

        state_file.write_text("{}")
        assert await storage.exists()

    async def test_write_overwrites(self, state_file):
        storage = LocalFileStorage(state_file)

        await storage.write("first document, rather long")
        await storage.write("second")

        assert await storage.read() == "second"
        assert [p.name for p in state_file.parent.iterdir()] == ["state.json"]

    async def test_write_creates_parent_directories(self, tmp_path):
        storage = LocalFileStorage(tmp_path / "nested" / "dir" / "state.json")

        await storage.write("{}")

        assert (tmp_path / "nested" / "dir" / "state.json").read_text() == "{}"


@pytest.mark.asyncio
class TestStateManager:
    """Test loading and persisting the state store."""

    async def test_load_missing_starts_fresh(self, state_file):
        store = await StateManager.from_path(state_file).load()

        assert store.crawling_state.status is CrawlStatus.NONE
        assert store.downloaded_urls == []

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "make-new",
            "{not json",
            "[]",
            '{"version": 1, "crawling_state": {"Complete": {"Dir": {}}}}',
            '{"version": 7}',
        ],
    )
    async def test_load_corrupt_starts_fresh(self, state_file, content):
        state_file.write_text(content)

        store = await StateManager.from_path(state_file).load()

        assert store.crawling_state.status is CrawlStatus.NONE
        assert store.downloaded_urls == []

    async def test_persist_then_load(self, state_file, sample_root):
        manager = StateManager.from_path(state_file)
        store = StateStore(downloaded_urls=["http://example.com/data/a.txt"])
        manager.mark_complete(store, sample_root)

        await manager.persist(store)
        loaded = await StateManager.from_path(state_file).load()

        assert loaded.crawling_state.is_complete
        assert loaded.root == sample_root
        assert loaded.downloaded_urls == ["http://example.com/data/a.txt"]
        assert loaded.created_at == store.created_at
        assert loaded.last_modified == store.last_modified

    async def test_persisted_file_is_readable_json(self, state_file, sample_root):
        manager = StateManager.from_path(state_file)
        store = StateStore()
        manager.mark_complete(store, sample_root)

        await manager.persist(store)

        text = state_file.read_text()
        assert text.count("\n") > 5  # indented, one key per line
        data = json.loads(text)
        assert data["version"] == 1
        assert data["crawling_state"]["Complete"]["CrawledDirectory"]["name"] == "/data/"
        assert data["downloaded_urls"] == []

    async def test_persist_refreshes_last_modified(self, state_file):
        manager = StateManager.from_path(state_file)
        store = StateStore()
        created = store.created_at

        await manager.persist(store)

        assert store.created_at == created
        assert store.last_modified >= created

    async def test_persist_failure_raises_filesystem_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        manager = StateManager.from_path(blocker / "state.json")

        with pytest.raises(FilesystemError):
            await manager.persist(StateStore())
