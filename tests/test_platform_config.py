# ABOUTME: Tests for per-platform config documents: location, read, write,
# ABOUTME: backups, and the post-save batch command
import json
import logging
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from mcpswitch.errors import SideEffectError
from mcpswitch.notifier import BATCH_ERROR
from mcpswitch.platform_config import (
    PlatformConfigManager,
    empty_document,
    render_batch_command,
    run_shell_command,
)

from conftest import FS_SERVER, write_json


def use_settings(workdir: Path, store, data: dict) -> None:
    write_json(workdir / "settings.json", data)
    store.load_settings(notify=False)


class TestConfigPath:
    """Tests for where a platform's document lives."""

    def test_defaults(self, store, platforms, workdir):
        assert platforms.config_path("claude") == workdir / "claude" / "config.json"

    def test_unknown_platform_uses_defaults(self, store, platforms, workdir):
        assert platforms.config_path("zed") == workdir / "zed" / "config.json"

    def test_platform_dir_and_filename(self, store, platforms, workdir):
        use_settings(workdir, store, {
            "output_dir": "/out",
            "platforms": [{"name": "cursor", "platform_dir": "cur", "output_filename": "mcp.json"}],
        })

        assert platforms.config_path("cursor") == Path("/out/cur/mcp.json")

    def test_absolute_platform_dir_overrides_output_dir(self, store, platforms, workdir, tmp_path):
        use_settings(workdir, store, {
            "output_dir": "out",
            "platforms": [{"name": "cursor", "platform_dir": str(tmp_path / "elsewhere")}],
        })

        assert platforms.config_path("cursor") == tmp_path / "elsewhere" / "config.json"

    def test_output_dir_relative_to_cwd(self, store, platforms, workdir):
        use_settings(workdir, store, {"output_dir": "generated", "platforms": [{"name": "claude"}]})

        assert platforms.config_path("claude") == workdir / "generated" / "claude" / "config.json"


class TestRead:
    """Tests for reading a platform's document."""

    def test_missing_file_is_empty(self, platforms):
        assert platforms.read("claude") == {"mcpServers": {}}

    def test_blank_platform_is_empty(self, platforms):
        assert platforms.read("") == empty_document()
        assert platforms.read("   ") == empty_document()

    def test_invalid_json_is_empty_and_logged(self, platforms, workdir, caplog):
        path = workdir / "claude" / "config.json"
        path.parent.mkdir()
        path.write_text("{ nope")

        with caplog.at_level(logging.ERROR, logger="mcpswitch.platform_config"):
            assert platforms.read("claude") == {"mcpServers": {}}

        assert "Error loading config for platform 'claude'" in caplog.text

    def test_non_object_is_empty(self, platforms, workdir):
        write_json(workdir / "claude" / "config.json", ["fs"])

        assert platforms.read("claude") == {"mcpServers": {}}

    def test_returns_document_as_stored(self, platforms, workdir):
        document = {"mcpServers": {"fs": FS_SERVER}, "extra": True}
        write_json(workdir / "claude" / "config.json", document)

        assert platforms.read("claude") == document


class TestWrite:
    """Tests for writing a platform's document."""

    def test_write_then_read(self, platforms):
        document = {"mcpServers": {"fs": FS_SERVER}}

        result = platforms.write("claude", document)

        assert result.success
        assert platforms.read("claude") == document

    def test_creates_directories_and_formats(self, store, platforms, workdir):
        use_settings(workdir, store, {"output_dir": "out", "platforms": [{"name": "claude"}]})

        result = platforms.write("claude", {"mcpServers": {"fs": {"command": "node", "args": ["x.js"]}}})

        path = workdir / "out" / "claude" / "config.json"
        assert result.path == path
        assert path.read_text() == (
            '{\n'
            '  "mcpServers": {\n'
            '    "fs": {\n'
            '      "args": [\n'
            '        "x.js"\n'
            '      ],\n'
            '      "command": "node"\n'
            '    }\n'
            '  }\n'
            '}\n'
        )

    def test_empty_document(self, platforms, workdir):
        platforms.write("claude", empty_document())

        assert json.loads((workdir / "claude" / "config.json").read_text()) == {"mcpServers": {}}

    def test_blank_platform_fails(self, platforms):
        result = platforms.write("", empty_document())

        assert not result.success
        assert result.error == "No platform selected"

    def test_unwritable_location_fails(self, platforms, workdir):
        # A regular file where the platform directory should be
        (workdir / "claude").write_text("not a directory")

        result = platforms.write("claude", empty_document())

        assert not result.success
        assert result.error
        assert result.to_dict() == {"success": False, "error": result.error}

    def test_unserializable_document_fails(self, platforms):
        result = platforms.write("claude", {"mcpServers": {"x": object()}})

        assert not result.success

    def test_backup_before_overwrite(self, store, platforms, workdir):
        use_settings(workdir, store, {"backup_dir": "backups", "platforms": [{"name": "claude"}]})
        platforms.write("claude", {"mcpServers": {}})

        platforms.write("claude", {"mcpServers": {"fs": FS_SERVER}})

        backups = list((workdir / "backups").iterdir())
        assert len(backups) == 1
        assert backups[0].name.startswith("claude_")
        assert json.loads(backups[0].read_text()) == {"mcpServers": {}}

    def test_no_backup_without_setting(self, platforms, workdir):
        platforms.write("claude", empty_document())
        platforms.write("claude", empty_document())

        assert not (workdir / "backups").exists()


class TestBatch:
    """Tests for the post-save batch command."""

    def test_batch_receives_written_path(self, store, platforms, workdir, commands):
        use_settings(workdir, store, {
            "output_dir": "/out",
            "platforms": [{"name": "p", "batch": "run {{config_file_path}}"}],
        })

        with patch("mcpswitch.platform_config.write_json_file"):
            result = platforms.write("p", {"mcpServers": {"fs": FS_SERVER}})

        assert result.success
        assert result.path == Path("/out/p/config.json")
        assert platforms.wait_for_commands(timeout=5)
        assert commands == [("run /out/p/config.json", workdir)]

    def test_reload_after_snapshot_does_not_mix_settings(self, store, platforms, workdir, commands, monkeypatch):
        use_settings(workdir, store, {
            "output_dir": "first",
            "platforms": [{"name": "claude", "batch": "run {{config_file_path}}"}],
        })
        real_snapshot = store.snapshot

        def snapshot_then_reload():
            result = real_snapshot()
            use_settings(workdir, store, {
                "output_dir": "second",
                "platforms": [{"name": "claude", "batch": "other {{config_file_path}}"}],
            })
            return result

        monkeypatch.setattr(store, "snapshot", snapshot_then_reload)

        result = platforms.write("claude", empty_document())

        expected = workdir / "first" / "claude" / "config.json"
        assert result.path == expected
        assert expected.exists()
        assert platforms.wait_for_commands(timeout=5)
        assert commands == [(f"run {expected}", workdir)]

    def test_every_placeholder_replaced(self):
        assert render_batch_command(
            "cp {{config_file_path}} {{config_file_path}}.bak", Path("/o/c.json")
        ) == "cp /o/c.json /o/c.json.bak"

    def test_no_batch_no_command(self, platforms, commands):
        platforms.write("claude", empty_document())

        assert platforms.wait_for_commands(timeout=5)
        assert commands == []

    def test_no_command_on_failed_write(self, store, platforms, workdir, commands):
        use_settings(workdir, store, {"platforms": [{"name": "claude", "batch": "run {{config_file_path}}"}]})
        (workdir / "claude").write_text("blocker")

        result = platforms.write("claude", empty_document())

        assert not result.success
        assert platforms.wait_for_commands(timeout=5)
        assert commands == []

    def test_failing_batch_notifies_and_save_succeeds(self, store, notifier, workdir, recorder):
        use_settings(workdir, store, {"platforms": [{"name": "claude", "batch": "deploy {{config_file_path}}"}]})

        def failing_runner(command, cwd):
            raise SideEffectError(command, 2, "deploy: not found")

        manager = PlatformConfigManager(store, notifier, runner=failing_runner)
        result = manager.write("claude", empty_document())

        assert result.success
        assert manager.wait_for_commands(timeout=5)
        events = recorder.collected()
        assert [name for name, _ in events] == [BATCH_ERROR]
        assert "exit code 2" in events[0][1].message
        assert "deploy: not found" in events[0][1].message

    def test_crashing_runner_notifies(self, store, notifier, workdir, recorder):
        use_settings(workdir, store, {"platforms": [{"name": "claude", "batch": "x"}]})

        def crashing_runner(command, cwd):
            raise RuntimeError("runner bug")

        manager = PlatformConfigManager(store, notifier, runner=crashing_runner)
        manager.write("claude", empty_document())
        manager.wait_for_commands(timeout=5)

        events = recorder.collected()
        assert [name for name, _ in events] == [BATCH_ERROR]
        assert "runner bug" in events[0][1].message


class TestRunShellCommand:
    """Tests for the default batch runner."""

    def test_success(self, tmp_path):
        completed = subprocess.CompletedProcess("echo hi", 0, stdout="hi\n", stderr="")
        with patch("mcpswitch.platform_config.subprocess.run", return_value=completed) as mock_run:
            run_shell_command("echo hi", tmp_path)

        mock_run.assert_called_once_with(
            "echo hi", shell=True, cwd=tmp_path, capture_output=True, text=True
        )

    def test_nonzero_exit(self, tmp_path):
        completed = subprocess.CompletedProcess("false", 1, stdout="", stderr="bad things\n")
        with patch("mcpswitch.platform_config.subprocess.run", return_value=completed):
            with pytest.raises(SideEffectError) as exc_info:
                run_shell_command("false", tmp_path)

        assert exc_info.value.returncode == 1
        assert "bad things" in str(exc_info.value)

    def test_cannot_start(self, tmp_path):
        with patch("mcpswitch.platform_config.subprocess.run", side_effect=OSError("no shell")):
            with pytest.raises(SideEffectError, match="could not be started"):
                run_shell_command("anything", tmp_path)

    def test_real_shell_runs_in_cwd(self, tmp_path):
        run_shell_command("echo done > marker.txt", tmp_path)

        assert (tmp_path / "marker.txt").read_text().strip() == "done"
