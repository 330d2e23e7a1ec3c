"""Shared test fixtures and fakes for all tests."""

import sqlite3
from pathlib import Path
from typing import Optional

import pytest

from specials_radio import schedule_store
from specials_radio.config import PathsConfig, SpecialsConfig
from specials_radio.liquidsoap_client import PushResult
from specials_radio.metadata_tool import MetadataTool, ToolResult


class FakeMetadataTool(MetadataTool):
    """In-memory MetadataTool.

    Tags live in a dict keyed by path string. Failure knobs mirror the
    ways the real tools fail.
    """

    def __init__(self):
        self.tags: dict[str, dict[str, str]] = {}
        self.repair_result = ToolResult(True, "fixed")
        self.write_result: Optional[ToolResult] = None
        self.ignore_writes = False
        self.calls: list[tuple] = []

    def set_tags(self, path: Path, artist: Optional[str] = None, title: Optional[str] = None):
        tags = {}
        if artist is not None:
            tags["artist"] = artist
        if title is not None:
            tags["title"] = title
        self.tags[str(path)] = tags

    def probe_tag(self, file_path: Path, tag: str) -> Optional[str]:
        self.calls.append(("probe", str(file_path), tag))
        if not Path(file_path).exists():
            return None
        return self.tags.get(str(file_path), {}).get(tag)

    def write_tags(self, file_path: Path, artist: str, title: str) -> ToolResult:
        self.calls.append(("write", str(file_path), artist, title))
        if self.write_result is not None and not self.write_result.success:
            return self.write_result
        if not self.ignore_writes:
            self.tags[str(file_path)] = {"artist": artist, "title": title}
        return ToolResult(True, "Tags updated")

    def repair_directory(self, directory: Path) -> ToolResult:
        self.calls.append(("repair", str(directory)))
        return self.repair_result

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeInjector:
    """In-memory BroadcastInjector recording every push."""

    def __init__(self, response: str = "1\nEND"):
        self.response = response
        self.connect_error: Optional[str] = None
        self.pushed: list[str] = []

    def push(self, file_path) -> PushResult:
        if self.connect_error is not None:
            return PushResult(False, f"Telnet connect failed: {self.connect_error}")
        self.pushed.append(str(file_path))
        if "error" in self.response.lower():
            return PushResult(False, self.response.strip())
        return PushResult(True, self.response.strip())


@pytest.fixture
def specials_dir(tmp_path) -> Path:
    path = tmp_path / "specials"
    path.mkdir()
    return path


@pytest.fixture
def specials_config(tmp_path, specials_dir) -> SpecialsConfig:
    """Config rooted at tmp_path with an existing specials directory."""
    return SpecialsConfig(paths=PathsConfig(base_path=tmp_path))


@pytest.fixture
def db_conn():
    """In-memory schedule database."""
    conn = sqlite3.connect(":memory:")
    schedule_store.init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_tool() -> FakeMetadataTool:
    return FakeMetadataTool()


@pytest.fixture
def fake_injector() -> FakeInjector:
    return FakeInjector()


@pytest.fixture
def special_file(specials_dir, fake_tool) -> Path:
    """An mp3 in the specials directory tagged Artist / Title."""
    path = specials_dir / "interview.mp3"
    path.write_bytes(b"fake audio data")
    fake_tool.set_tags(path.resolve(), artist="Artist", title="Title")
    return path.resolve()
