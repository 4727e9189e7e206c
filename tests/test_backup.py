# ABOUTME: Tests for backup utilities.
# ABOUTME: Covers backup_name, create_backup, and cleanup_old_backups functions.
import re
from datetime import datetime
from pathlib import Path

import pytest

from mcpswitch.utils.backup import backup_name, cleanup_old_backups, create_backup


class TestBackupName:
    """Tests for backup_name function."""

    def test_format(self):
        name = backup_name("claude", Path("out/claude/config.json"), datetime(2026, 1, 8, 14, 30, 22))
        assert name == "claude_20260108_143022.json"

    def test_separators_in_platform_name_are_replaced(self):
        """Test that underscores can't be confused with the timestamp separator."""
        name = backup_name("claude_desktop app", Path("c.json"), datetime(2026, 1, 8, 14, 30, 22))
        assert name == "claude-desktop-app_20260108_143022.json"

    def test_file_without_suffix(self):
        name = backup_name("p", Path("config"), datetime(2026, 1, 8, 14, 30, 22))
        assert name == "p_20260108_143022.bak"


class TestCreateBackup:
    """Tests for create_backup function."""

    def test_backup_preserves_content(self, tmp_path):
        """Test that backup preserves file content."""
        source = tmp_path / "config.json"
        original_content = '{"mcpServers": {"fs": {"command": "node"}}}'
        source.write_text(original_content)

        backup_path = create_backup(source, tmp_path / "backups", "claude")

        assert backup_path.read_text() == original_content
        assert re.match(r"^claude_\d{8}_\d{6}\.json$", backup_path.name)

    def test_creates_backup_dir_if_missing(self, tmp_path):
        source = tmp_path / "config.json"
        source.write_text("{}")
        backup_dir = tmp_path / "new_backups" / "nested"

        create_backup(source, backup_dir, "claude")

        assert backup_dir.is_dir()

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Source file not found"):
            create_backup(tmp_path / "missing.json", tmp_path / "backups", "claude")


class TestCleanupOldBackups:
    """Tests for cleanup_old_backups function."""

    def test_keeps_newest_per_platform(self, tmp_path):
        for day in range(1, 8):
            (tmp_path / f"claude_2026010{day}_120000.json").write_text("{}")
        (tmp_path / "cursor_20260101_120000.json").write_text("{}")

        deleted = cleanup_old_backups(tmp_path)

        assert sorted(p.name for p in deleted) == [
            "claude_20260101_120000.json",
            "claude_20260102_120000.json",
        ]
        remaining = sorted(p.name for p in tmp_path.iterdir())
        assert "cursor_20260101_120000.json" in remaining
        assert len(remaining) == 6

    def test_ignores_unrelated_files(self, tmp_path):
        (tmp_path / "notes.txt").write_text("keep me")

        assert cleanup_old_backups(tmp_path, max_backups_per_platform=0) == []
        assert (tmp_path / "notes.txt").exists()

    def test_missing_dir_returns_empty(self, tmp_path):
        assert cleanup_old_backups(tmp_path / "missing") == []
