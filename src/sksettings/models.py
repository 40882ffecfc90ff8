"""SKSettings data models — the hooks section of settings.json as Pydantic models.

A settings document binds hook commands to assistant tool-use events:

    hooks:
      <EventType>:            # e.g. PreToolUse, PostToolUse, Stop
        - matcher: "Bash"     # tool name pattern
          hooks:
            - type: command
              command: "$CLAUDE_CONFIG_DIR/scripts/guard.py"

Only the shape needed to find command paths is modelled; every other key
is carried through untouched.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel


class HookDescriptor(BaseModel):
    """A single command the assistant runs when its matcher fires."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="command", description="Hook kind (only 'command' is used)")
    command: Optional[str] = Field(default=None, description="Path of the script to invoke")


class HookMatcher(BaseModel):
    """A tool-name pattern and the hooks bound to it."""

    model_config = ConfigDict(extra="allow")

    matcher: str = Field(default="", description="Tool name pattern")
    hooks: list[HookDescriptor] = Field(default_factory=list)


class HooksSection(RootModel[dict[str, list[HookMatcher]]]):
    """Event type name -> matchers."""

    def command_paths(self) -> list[str]:
        """Every non-empty command in document order, duplicates dropped."""
        paths: dict[str, None] = {}
        for matchers in self.root.values():
            for matcher in matchers:
                for hook in matcher.hooks:
                    if hook.command:
                        paths.setdefault(hook.command, None)
        return list(paths)


class ValidationResult(BaseModel):
    """Outcome of checking hook command paths on disk."""

    checked: list[str] = Field(default_factory=list, description="Every path that was checked")
    missing: list[str] = Field(default_factory=list, description="Paths with no regular file")

    @property
    def ok(self) -> bool:
        """True when every checked path exists."""
        return not self.missing


class ResolvedSettings(BaseModel):
    """A template after substitution, parsing and hook validation."""

    text: str = Field(description="Resolved document text")
    document: Any = Field(default=None, description="Parsed JSON value")
    paths: list[str] = Field(default_factory=list, description="Hook command paths")
    validation: ValidationResult = Field(default_factory=ValidationResult)


class ResolveMode(str, enum.Enum):
    """What to do with a resolved, validated document."""

    EMIT = "emit"
    VALIDATE = "validate"
    WRITE = "write"
    MERGE = "merge"
