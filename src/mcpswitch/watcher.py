# ABOUTME: File watch service built on watchdog's polling observer
# ABOUTME: Decides "changed" from stat snapshots: mtime, removal, truncation
# ABOUTME: Change callbacks never run on the observer thread
import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.observers.polling import PollingObserver

from mcpswitch.config import WATCH_INTERVAL

logger = logging.getLogger(__name__)

OnChange = Callable[[], None]


@dataclass(frozen=True)
class FileState:
    """Stat snapshot of a watched file; all zeros means the file is gone."""
    mtime_ns: int = 0
    size: int = 0
    ino: int = 0

    @classmethod
    def of(cls, path: Path) -> "FileState":
        try:
            st = os.stat(path)
        except OSError:
            return MISSING
        return cls(mtime_ns=st.st_mtime_ns, size=st.st_size, ino=st.st_ino)

    @property
    def exists(self) -> bool:
        return self.ino != 0


MISSING = FileState()


def has_changed(previous: FileState, current: FileState) -> bool:
    """Return True when current should count as a change from previous.

    ABOUTME: Fires on a new mtime, on removal (ino 0), or on a drop to zero size
    ABOUTME: Identical snapshots never fire, so a missing file fires only once
    """
    if current == previous:
        return False
    return (
        current.mtime_ns != previous.mtime_ns
        or current.ino == 0
        or (current.size == 0 and previous.size > 0)
    )


def normalize(path: str | Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(os.fsdecode(path))))


@dataclass
class _Registration:
    callback: OnChange
    state: FileState

def nearest_existing_directory(directory: Path) -> Path | None:
    """Return directory itself if it exists, else its closest existing ancestor."""
    for candidate in (directory, *directory.parents):
        if candidate.is_dir():
            return candidate
    return None


class _DirectoryEventHandler(FileSystemEventHandler):
    """Routes watchdog events for a directory to the watched files in it.

    ABOUTME: Runs on the observer thread, which holds the observer lock;
    ABOUTME: it only compares stat snapshots and queues work, never waits on callers
    """

    def __init__(self, watcher: "FileWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        # A directory appearing or vanishing may change what has to be scheduled
        if event.is_directory or self._watcher.waiting_for_directories():
            self._watcher.request_sync()
        if event.is_directory:
            return
        # Moves carry the watched path in dest_path when an editor saves by rename
        for raw_path in {event.src_path, getattr(event, "dest_path", "")}:
            if raw_path:
                self._watcher.check_later(normalize(raw_path))


class FileWatcher:
    """Watch individual files for modification.

    ABOUTME: One non-recursive watchdog watch per parent directory
    ABOUTME: A missing parent is covered by watching its nearest existing ancestor
    ABOUTME: until the directory appears
    ABOUTME: watch() on an already watched path replaces its callback
    ABOUTME: Callbacks run on the watcher's own worker thread; their errors are logged

    Args:
        interval: Poll interval in seconds
        observer: Observer to schedule on (defaults to a PollingObserver)
    """

    def __init__(self, interval: float = WATCH_INTERVAL, observer: BaseObserver | None = None) -> None:
        self.interval = interval
        self._observer = observer if observer is not None else PollingObserver(timeout=interval)
        self._handler = _DirectoryEventHandler(self)
        # _lock guards registrations and is never held while calling the observer
        self._lock = threading.Lock()
        # _schedule_lock serializes schedule/unschedule; the observer thread never takes it
        self._schedule_lock = threading.Lock()
        self._registrations: dict[Path, _Registration] = {}
        self._directory_watches: dict[Path, ObservedWatch] = {}
        self._missing_directories: set[Path] = set()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mcpswitch-watch")
        self._started = False
        self._closed = False

    def __enter__(self) -> "FileWatcher":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> None:
        with self._lock:
            if self._started or self._closed:
                return
            self._started = True
        self._observer.start()

    def stop(self) -> None:
        """Stop the observer, drop all registrations and finish queued callbacks."""
        with self._lock:
            if self._closed:
                return
            was_started = self._started
            self._started = False
            self._closed = True
            self._registrations.clear()
            self._missing_directories.clear()
        if was_started:
            self._observer.stop()
            self._observer.join()
        with self._schedule_lock:
            self._directory_watches.clear()
        self._executor.shutdown(wait=True)

    def watched_paths(self) -> list[Path]:
        with self._lock:
            return list(self._registrations)

    def is_watching(self, path: str | Path) -> bool:
        with self._lock:
            return normalize(path) in self._registrations

    def waiting_for_directories(self) -> bool:
        with self._lock:
            return bool(self._missing_directories)

    def watch(self, path: str | Path, on_change: OnChange) -> None:
        """Start watching path, replacing any previous registration for it."""
        path = normalize(path)
        with self._lock:
            if self._closed:
                logger.warning(f"Watcher stopped, not watching {path}")
                return
            self._registrations[path] = _Registration(callback=on_change, state=FileState.of(path))
        logger.info(f"Watching {path} for changes")
        self.sync()

    def unwatch(self, path: str | Path) -> None:
        path = normalize(path)
        with self._lock:
            if self._registrations.pop(path, None) is None:
                return
        logger.info(f"Stopped watching {path}")
        self.sync()

    def check(self, path: str | Path) -> bool:
        """Compare path's current stat with the last snapshot and fire on change.

        ABOUTME: The callback runs on the calling thread

        Returns:
            True if the change callback was invoked
        """
        path = normalize(path)
        callback = self._detect(path)
        if callback is None:
            return False
        self._run_callback(path, callback)
        return True

    def check_later(self, path: Path) -> None:
        """Compare snapshots now, run the callback on the worker thread."""
        callback = self._detect(path)
        if callback is not None:
            self._submit(self._run_callback, path, callback)

    def request_sync(self) -> None:
        """Queue a sync() on the worker thread."""
        self._submit(self.sync)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until callbacks queued so far have run.

        Returns:
            True if they finished within timeout
        """
        with self._lock:
            if self._closed:
                return True
            marker: Future[None] = self._executor.submit(lambda: None)
        try:
            marker.result(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def sync(self) -> None:
        """Bring the scheduled directories in line with the registrations.

        ABOUTME: Files in a directory that just became watchable are checked at once,
        ABOUTME: so a file created together with its directory is not missed
        """
        with self._schedule_lock:
            with self._lock:
                if self._closed:
                    return
                parents = {path.parent for path in self._registrations}

            needed: set[Path] = set()
            missing: set[Path] = set()
            for directory in parents:
                target = nearest_existing_directory(directory)
                if target != directory:
                    missing.add(directory)
                if target is not None:
                    needed.add(target)

            for directory in list(self._directory_watches):
                if directory not in needed:
                    self._unschedule(directory)

            newly_watched = [
                directory for directory in sorted(needed - set(self._directory_watches))
                if self._schedule(directory)
            ]

            with self._lock:
                appeared = self._missing_directories - missing
                self._missing_directories = missing

        for directory in sorted(missing):
            logger.debug(f"Waiting for {directory} to be created")
        for directory in newly_watched:
            if directory in appeared:
                logger.info(f"{directory} now exists, watching it")
                for path in self._registered_in(directory):
                    self.check(path)

    def _registered_in(self, directory: Path) -> list[Path]:
        with self._lock:
            return [path for path in self._registrations if path.parent == directory]

    def _detect(self, path: Path) -> OnChange | None:
        with self._lock:
            registration = self._registrations.get(path)
            if registration is None:
                return None
            current = FileState.of(path)
            changed = has_changed(registration.state, current)
            registration.state = current
            return registration.callback if changed else None

    def _run_callback(self, path: Path, callback: OnChange) -> None:
        logger.info(f"Change detected in {path}")
        try:
            callback()
        except Exception:
            logger.exception(f"Change handler for {path} failed")

    def _submit(self, fn: Callable[..., None], *args: object) -> None:
        with self._lock:
            if self._closed:
                return
            self._executor.submit(fn, *args)

    def _schedule(self, directory: Path) -> bool:
        try:
            self._directory_watches[directory] = self._observer.schedule(
                self._handler, str(directory), recursive=False
            )
        except OSError as e:
            logger.warning(f"Cannot watch {directory}: {e}")
            return False
        return True

    def _unschedule(self, directory: Path) -> None:
        watch = self._directory_watches.pop(directory, None)
        if watch is not None:
            self._observer.unschedule(watch)
