"""Merge resolved settings into an existing settings.json.

Rules:
    hooks        new event types are added; matchers with a known pattern
                 gain only the commands they don't already have
    permissions  allow/deny/ask lists are unioned, existing order first
    other keys   only filled in when the existing settings lack them
"""

from __future__ import annotations

import copy
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .resolver import HookSchemaError, InvalidJSONError, SettingsSchemaError, write_document

logger = logging.getLogger("sksettings.merge")

PERMISSION_KEYS = ("allow", "deny", "ask")


def _checked_hooks(hooks: Any) -> dict[str, list]:
    """Return hooks as event -> matchers, with null sections read as empty."""
    if hooks is None:
        return {}
    if not isinstance(hooks, dict):
        raise HookSchemaError(f"'hooks' must be an object, got {type(hooks).__name__}")

    checked: dict[str, list] = {}
    for event_type, matchers in hooks.items():
        if matchers is None:
            matchers = []
        if not isinstance(matchers, list) or not all(isinstance(m, dict) for m in matchers):
            raise HookSchemaError(f"hooks.{event_type} must be a list of matcher objects")

        fixed = []
        for matcher in matchers:
            if not isinstance(matcher.get("matcher", ""), str):
                raise HookSchemaError(f"hooks.{event_type}: matcher pattern must be a string")
            entries = matcher.get("hooks")
            if entries is None:
                entries = []
            if not isinstance(entries, list) or not all(isinstance(h, dict) for h in entries):
                raise HookSchemaError(f"hooks.{event_type}: matcher hooks must be a list of objects")
            fixed.append({**matcher, "hooks": entries})
        checked[event_type] = fixed
    return checked


def _checked_permissions(permissions: Any) -> dict[str, Any]:
    """Return permissions as an object of string lists, dropping null lists."""
    if permissions is None:
        return {}
    if not isinstance(permissions, dict):
        raise SettingsSchemaError(
            f"'permissions' must be an object, got {type(permissions).__name__}"
        )

    checked = dict(permissions)
    for key in PERMISSION_KEYS:
        if key not in checked:
            continue
        entries = checked[key]
        if entries is None:
            del checked[key]
        elif not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            raise SettingsSchemaError(f"permissions.{key} must be a list of strings")
    return checked


def _merge_hooks(existing: dict[str, list], incoming: dict[str, list]) -> dict[str, list]:
    merged = dict(existing)
    for event_type, matchers in incoming.items():
        if event_type not in merged:
            merged[event_type] = matchers
            continue

        current = merged[event_type]
        by_pattern = {m.get("matcher", ""): m for m in current}
        for matcher in matchers:
            pattern = matcher.get("matcher", "")
            if pattern not in by_pattern:
                current.append(matcher)
                by_pattern[pattern] = matcher
                continue

            target = by_pattern[pattern]
            target_hooks = target.setdefault("hooks", [])
            known = {h.get("command") for h in target_hooks}
            for hook in matcher.get("hooks", []):
                if hook.get("command") not in known:
                    target_hooks.append(hook)
                    known.add(hook.get("command"))
    return merged


def _merge_permissions(existing: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = dict(existing)
    for key in PERMISSION_KEYS:
        current = list(merged.get(key, []))
        seen = set(current)
        for entry in incoming.get(key, []):
            if entry not in seen:
                current.append(entry)
                seen.add(entry)
        if current:
            merged[key] = current
    return merged


def merge_settings(existing: dict[str, Any], resolved: dict[str, Any]) -> dict[str, Any]:
    """Merge resolved template settings into existing user settings.

    Neither input is modified.

    Args:
        existing: The settings currently on disk.
        resolved: The resolved template document.

    Returns:
        dict: The merged settings.

    Raises:
        SettingsSchemaError: If hooks or permissions have the wrong shape.
    """
    merged = copy.deepcopy(existing)
    incoming = copy.deepcopy(resolved)

    hooks = _merge_hooks(_checked_hooks(merged.get("hooks")), _checked_hooks(incoming.get("hooks")))
    if hooks:
        merged["hooks"] = hooks
    elif merged.get("hooks", {}) is None:
        del merged["hooks"]

    incoming_permissions = _checked_permissions(incoming.get("permissions"))
    existing_permissions = _checked_permissions(merged.get("permissions"))
    if incoming_permissions:
        merged["permissions"] = _merge_permissions(existing_permissions, incoming_permissions)

    for key, value in incoming.items():
        if key in ("hooks", "permissions"):
            continue
        merged.setdefault(key, value)

    return merged


def backup_path_for(target: Path, now: Optional[datetime] = None) -> Path:
    """Timestamped sibling path used to back up target before a merge.

    A numeric suffix is added when a backup from the same second exists.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    backup = target.with_name(f"{target.name}.backup.{stamp}")
    n = 1
    while backup.exists():
        backup = target.with_name(f"{target.name}.backup.{stamp}.{n}")
        n += 1
    return backup


def merge_into_file(target: Path, resolved_text: str, resolved: Any) -> Optional[Path]:
    """Merge the resolved document into target.

    A missing target is simply written with the resolved document.

    Args:
        target: The settings file to update.
        resolved_text: Resolved document text.
        resolved: Parsed resolved document.

    Returns:
        Path of the backup copy, or None when target did not exist.

    Raises:
        InvalidJSONError: If target exists but is not a JSON object.
        SettingsSchemaError: If target's hooks or permissions have the wrong shape.
    """
    if not target.exists():
        write_document(resolved_text, target)
        return None

    try:
        existing = json.loads(target.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJSONError(f"Existing settings file is not valid JSON: {target} ({exc})") from exc
    if not isinstance(existing, dict) or not isinstance(resolved, dict):
        raise InvalidJSONError(f"Cannot merge non-object settings into {target}")

    try:
        merged = merge_settings(existing, resolved)
    except SettingsSchemaError as exc:
        raise type(exc)(f"Cannot merge into {target}: {exc}") from exc

    backup = backup_path_for(target)
    shutil.copy2(target, backup)
    logger.debug("Backed up %s to %s", target, backup)

    target.write_text(json.dumps(merged, indent=2) + "\n", encoding="utf-8")
    return backup
