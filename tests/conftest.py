# ABOUTME: Shared fixtures: a working directory with settings/database files,
# ABOUTME: a recording fake watcher, and a notifier event recorder
import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from mcpswitch.notifier import EVENTS, Notifier
from mcpswitch.platform_config import PlatformConfigManager
from mcpswitch.store import ConfigStore
from mcpswitch.watcher import normalize

FS_SERVER = {"command": "node", "args": ["x.js"]}
GIT_SERVER = {"command": "uvx", "args": ["mcp-server-git"]}


class FakeWatcher:
    """Records watch/unwatch calls; fire() plays the role of a detected change."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path]] = []
        self.callbacks: dict[Path, Callable[[], None]] = {}

    def watch(self, path: Path, on_change: Callable[[], None]) -> None:
        path = normalize(path)
        self.calls.append(("watch", path))
        self.callbacks[path] = on_change

    def unwatch(self, path: Path) -> None:
        path = normalize(path)
        self.calls.append(("unwatch", path))
        self.callbacks.pop(path, None)

    def fire(self, path: Path) -> None:
        self.callbacks[normalize(path)]()


class Recorder:
    """Collects every notification as (event, payload) in delivery order."""

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self.events: list[tuple[str, Any]] = []
        self._lock = threading.Lock()
        for event in EVENTS:
            notifier.subscribe(event, self._make_handler(event))

    def _make_handler(self, event: str) -> Callable[[Any], None]:
        def handler(payload: Any) -> None:
            with self._lock:
                self.events.append((event, payload))
        return handler

    def collected(self) -> list[tuple[str, Any]]:
        self.notifier.flush(timeout=5)
        with self._lock:
            return list(self.events)

    def names(self) -> list[str]:
        return [event for event, _ in self.collected()]


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Working directory holding settings.json and database.json."""
    work = tmp_path / "work"
    work.mkdir()
    write_json(work / "settings.json", {"platforms": [{"name": "claude"}]})
    write_json(work / "database.json", {"mcpServers": {"fs": FS_SERVER, "git": GIT_SERVER}})
    return work


@pytest.fixture
def notifier():
    notifier = Notifier()
    yield notifier
    notifier.close()


@pytest.fixture
def recorder(notifier: Notifier) -> Recorder:
    return Recorder(notifier)


@pytest.fixture
def fake_watcher() -> FakeWatcher:
    return FakeWatcher()


@pytest.fixture
def store(workdir: Path, notifier: Notifier, fake_watcher: FakeWatcher) -> ConfigStore:
    """Store over workdir, not started."""
    return ConfigStore(notifier, fake_watcher, cwd=workdir, argv=[])


@pytest.fixture
def commands() -> list[tuple[str, Path]]:
    """Batch commands seen by the recording runner."""
    return []


@pytest.fixture
def platforms(store: ConfigStore, notifier: Notifier, commands: list) -> PlatformConfigManager:
    """Platform config manager whose batch runner only records commands."""
    def runner(command: str, cwd: Path) -> None:
        commands.append((command, cwd))

    return PlatformConfigManager(store, notifier, runner=runner)
