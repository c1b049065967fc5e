"""Tests for the watch-mode change handler."""

import threading
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

from archgraph.cli_watch import CodeChangeHandler


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _event(src_path, event_type="modified", is_directory=False, dest_path=""):
    return SimpleNamespace(
        src_path=str(src_path),
        dest_path=str(dest_path) if dest_path else "",
        event_type=event_type,
        is_directory=is_directory,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def calls():
    return []


@pytest.fixture
def handler(temp_dir: Path, clock: FakeClock, calls) -> CodeChangeHandler:
    return CodeChangeHandler(calls.append, temp_dir, debounce_seconds=5.0, clock=clock)


class TestCodeChangeHandler:
    """Tests for CodeChangeHandler."""

    def test_first_change_rescans_immediately(self, handler, temp_dir: Path, calls):
        """The first relevant change triggers a rescan at once."""
        handler.on_any_event(_event(temp_dir / "src" / "lib.rs"))

        assert calls == [[str(temp_dir / "src" / "lib.rs")]]

    def test_ignores_non_rust_and_hidden(self, handler, temp_dir: Path, calls):
        """Other extensions, hidden paths and directories are ignored."""
        handler.on_any_event(_event(temp_dir / "README.md"))
        handler.on_any_event(_event(temp_dir / ".git" / "x.rs"))
        handler.on_any_event(_event(temp_dir / "src", is_directory=True))
        handler.on_any_event(_event(temp_dir / "src" / "lib.rs", event_type="opened"))

        assert calls == []
        assert handler.flush() is False

    def test_debounce_batches_changes(self, handler, temp_dir: Path, clock: FakeClock, calls):
        """Changes inside the debounce window are batched into the next rescan."""
        handler.on_any_event(_event(temp_dir / "a.rs"))
        clock.now += 1
        handler.on_any_event(_event(temp_dir / "b.rs"))
        handler.on_any_event(_event(temp_dir / "c.rs", event_type="deleted"))

        assert len(calls) == 1
        assert handler.flush() is False

        clock.now += 5
        assert handler.flush() is True
        assert calls[1] == [str(temp_dir / "b.rs"), str(temp_dir / "c.rs")]

    def test_moves_report_both_paths(self, handler, temp_dir: Path, calls):
        """A move counts for its source and destination."""
        handler.on_any_event(
            _event(temp_dir / "old.rs", event_type="moved", dest_path=temp_dir / "new.rs")
        )

        assert calls == [[str(temp_dir / "new.rs"), str(temp_dir / "old.rs")]]

    def test_config_files_trigger_rescan(self, handler, temp_dir: Path, calls):
        """Project config files count, including dotted ones, but only at the root."""
        handler.on_any_event(_event(temp_dir / "nested" / "archgraph.toml"))
        assert calls == []

        handler.on_any_event(_event(temp_dir / ".archgraph.yaml"))
        assert calls == [[str(temp_dir / ".archgraph.yaml")]]

    def test_flush_without_changes(self, handler, calls):
        """Nothing pending means no rescan."""
        assert handler.flush() is False
        assert calls == []


class TestConcurrentFlush:
    """Rescans triggered from the observer thread and the watch loop."""

    def test_rescans_never_overlap(self, temp_dir: Path):
        """A flush arriving mid-rescan waits for the running one to finish."""
        entered = threading.Event()
        release = threading.Event()
        state = {"active": 0, "peak": 0}
        state_lock = threading.Lock()
        batches = []

        def slow_rescan(files):
            with state_lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            entered.set()
            release.wait(timeout=5)
            batches.append(files)
            with state_lock:
                state["active"] -= 1

        handler = CodeChangeHandler(slow_rescan, temp_dir, debounce_seconds=0.0)
        first = threading.Thread(target=handler.on_any_event, args=(_event(temp_dir / "a.rs"),))
        second = threading.Thread(target=handler.on_any_event, args=(_event(temp_dir / "b.rs"),))

        first.start()
        assert entered.wait(timeout=5)
        second.start()
        time.sleep(0.2)
        assert state["active"] == 1
        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert state["peak"] == 1
        assert batches == [[str(temp_dir / "a.rs")], [str(temp_dir / "b.rs")]]
