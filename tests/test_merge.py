"""Tests for merging resolved settings into an existing settings.json."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from sksettings.merge import backup_path_for, merge_into_file, merge_settings
from sksettings.resolver import HookSchemaError, InvalidJSONError, SettingsSchemaError

RESOLVED = {
    "model": "opus",
    "hooks": {
        "PreToolUse": [
            {"matcher": "Bash", "hooks": [{"type": "command", "command": "/r/hooks/guard.py"}]},
            {"matcher": "Edit", "hooks": [{"type": "command", "command": "/r/hooks/edit.py"}]},
        ],
        "Stop": [{"matcher": "", "hooks": [{"type": "command", "command": "/r/hooks/stop.sh"}]}],
    },
    "permissions": {"allow": ["Bash(ls:*)", "Read"], "deny": ["Bash(rm -rf:*)"]},
}


class TestMergeSettings:
    """Test the merge rules."""

    def test_into_empty(self):
        assert merge_settings({}, RESOLVED) == RESOLVED

    def test_user_values_win(self):
        merged = merge_settings({"model": "sonnet"}, RESOLVED)
        assert merged["model"] == "sonnet"

    def test_new_event_type_added(self):
        existing = {"hooks": {"PreToolUse": []}}
        merged = merge_settings(existing, RESOLVED)
        assert merged["hooks"]["Stop"] == RESOLVED["hooks"]["Stop"]

    def test_same_matcher_gains_only_new_commands(self):
        existing = {
            "hooks": {
                "PreToolUse": [
                    {
                        "matcher": "Bash",
                        "hooks": [
                            {"type": "command", "command": "/mine/lint.sh"},
                            {"type": "command", "command": "/r/hooks/guard.py"},
                        ],
                    }
                ]
            }
        }
        merged = merge_settings(existing, RESOLVED)
        bash = merged["hooks"]["PreToolUse"][0]
        assert [h["command"] for h in bash["hooks"]] == ["/mine/lint.sh", "/r/hooks/guard.py"]
        assert [m["matcher"] for m in merged["hooks"]["PreToolUse"]] == ["Bash", "Edit"]

    def test_permissions_unioned(self):
        existing = {"permissions": {"allow": ["Read", "Glob"], "ask": ["WebFetch"]}}
        merged = merge_settings(existing, RESOLVED)
        assert merged["permissions"]["allow"] == ["Read", "Glob", "Bash(ls:*)"]
        assert merged["permissions"]["deny"] == ["Bash(rm -rf:*)"]
        assert merged["permissions"]["ask"] == ["WebFetch"]

    def test_inputs_not_mutated(self):
        existing = {"hooks": {"PreToolUse": [{"matcher": "Bash", "hooks": []}]}}
        snapshot = json.dumps(existing)
        merge_settings(existing, RESOLVED)
        assert json.dumps(existing) == snapshot
        assert "/mine" not in json.dumps(RESOLVED)

    def test_idempotent(self):
        once = merge_settings({"model": "sonnet"}, RESOLVED)
        assert merge_settings(once, RESOLVED) == once

    def test_null_hooks_read_as_empty(self):
        merged = merge_settings({"hooks": None}, RESOLVED)
        assert merged["hooks"] == RESOLVED["hooks"]

    def test_null_matcher_hooks_read_as_empty(self):
        existing = {"hooks": {"PreToolUse": [{"matcher": "Bash", "hooks": None}]}}
        merged = merge_settings(existing, RESOLVED)
        bash = merged["hooks"]["PreToolUse"][0]
        assert [h["command"] for h in bash["hooks"]] == ["/r/hooks/guard.py"]

    def test_null_event_type_read_as_empty(self):
        merged = merge_settings({"hooks": {"Stop": None}}, RESOLVED)
        assert merged["hooks"]["Stop"] == RESOLVED["hooks"]["Stop"]

    def test_null_permissions_read_as_empty(self):
        merged = merge_settings({"permissions": None}, RESOLVED)
        assert merged["permissions"] == RESOLVED["permissions"]

    def test_null_permission_list_read_as_empty(self):
        merged = merge_settings({"permissions": {"allow": None}}, RESOLVED)
        assert merged["permissions"]["allow"] == ["Bash(ls:*)", "Read"]

    @pytest.mark.parametrize(
        "existing",
        [
            {"hooks": ["PreToolUse"]},
            {"hooks": {"PreToolUse": {"matcher": "Bash"}}},
            {"hooks": {"PreToolUse": ["Bash"]}},
            {"hooks": {"PreToolUse": [{"matcher": "Bash", "hooks": "/a.sh"}]}},
            {"hooks": {"PreToolUse": [{"matcher": "Bash", "hooks": ["/a.sh"]}]}},
            {"hooks": {"PreToolUse": [{"matcher": ["Bash"], "hooks": []}]}},
        ],
    )
    def test_bad_hooks_shape_rejected(self, existing):
        with pytest.raises(HookSchemaError):
            merge_settings(existing, RESOLVED)

    @pytest.mark.parametrize(
        "existing",
        [
            {"permissions": ["Read"]},
            {"permissions": "Read"},
            {"permissions": {"allow": "Read"}},
            {"permissions": {"deny": [{"tool": "Bash"}]}},
        ],
    )
    def test_bad_permissions_shape_rejected(self, existing):
        with pytest.raises(SettingsSchemaError, match="permissions"):
            merge_settings(existing, RESOLVED)


class TestMergeIntoFile:
    """Test merging against files on disk."""

    def test_missing_target_written_as_is(self, tmp_path: Path):
        target = tmp_path / "home" / ".claude" / "settings.json"
        text = json.dumps(RESOLVED, indent=2)
        assert merge_into_file(target, text, RESOLVED) is None
        assert target.read_text() == text + "\n"

    def test_existing_target_backed_up(self, tmp_path: Path):
        target = tmp_path / "settings.json"
        target.write_text(json.dumps({"model": "sonnet"}))

        backup = merge_into_file(target, json.dumps(RESOLVED), RESOLVED)

        assert backup is not None
        assert json.loads(backup.read_text()) == {"model": "sonnet"}
        merged = json.loads(target.read_text())
        assert merged["model"] == "sonnet"
        assert "hooks" in merged
        assert target.read_text().endswith("}\n")

    def test_invalid_existing_file(self, tmp_path: Path):
        target = tmp_path / "settings.json"
        target.write_text("{broken")
        with pytest.raises(InvalidJSONError, match="not valid JSON"):
            merge_into_file(target, json.dumps(RESOLVED), RESOLVED)
        assert target.read_text() == "{broken"
        assert list(tmp_path.iterdir()) == [target]

    def test_backup_name(self, tmp_path: Path):
        path = backup_path_for(tmp_path / "settings.json", datetime(2026, 1, 2, 3, 4, 5))
        assert path.name == "settings.json.backup.20260102-030405"

    def test_backup_name_unique_within_a_second(self, tmp_path: Path):
        now = datetime(2026, 1, 2, 3, 4, 5)
        target = tmp_path / "settings.json"
        backup_path_for(target, now).write_text("first")
        second = backup_path_for(target, now)
        assert second.name == "settings.json.backup.20260102-030405.1"
        second.write_text("second")
        assert backup_path_for(target, now).name == "settings.json.backup.20260102-030405.2"

    def test_two_merges_keep_original_backup(self, tmp_path: Path):
        target = tmp_path / "settings.json"
        target.write_text(json.dumps({"model": "sonnet"}))

        first = merge_into_file(target, json.dumps(RESOLVED), RESOLVED)
        second = merge_into_file(target, json.dumps(RESOLVED), RESOLVED)

        assert first != second
        assert json.loads(first.read_text()) == {"model": "sonnet"}

    @pytest.mark.parametrize(
        "existing",
        [
            {"hooks": {"PreToolUse": ["Bash"]}},
            {"permissions": ["Read"]},
        ],
    )
    def test_bad_shape_names_target_and_writes_nothing(self, tmp_path: Path, existing):
        target = tmp_path / "settings.json"
        original = json.dumps(existing)
        target.write_text(original)

        with pytest.raises(SettingsSchemaError, match="settings.json"):
            merge_into_file(target, json.dumps(RESOLVED), RESOLVED)

        assert target.read_text() == original
        assert list(tmp_path.iterdir()) == [target]
