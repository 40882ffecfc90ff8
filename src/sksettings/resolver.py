"""SKSettings Resolver — turn a portable template into machine settings.

Pipeline:
    load_template -> resolve -> parse -> extract_hook_paths -> validate

Every step is a plain function of its inputs. Nothing touches the
filesystem except reading the template, checking hook paths, and the
single final write in write mode.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from . import PLACEHOLDER
from .config import ResolverConfig
from .models import HooksSection, ResolvedSettings, ValidationResult

logger = logging.getLogger("sksettings.resolver")


class SettingsError(Exception):
    """Base for every failure that ends an invocation."""


class TemplateNotFoundError(SettingsError, FileNotFoundError):
    """The template file does not exist or cannot be read."""


class InvalidJSONError(SettingsError, ValueError):
    """The resolved text is not valid JSON."""


class SettingsSchemaError(SettingsError, ValueError):
    """A settings section has the wrong JSON shape."""


class HookSchemaError(SettingsSchemaError):
    """The hooks section is not event -> matchers -> hooks."""


class MissingHookPathsError(SettingsError, ValueError):
    """One or more hook command paths do not exist on disk."""

    def __init__(self, missing: list[str], checked: int = 0) -> None:
        self.missing = list(missing)
        self.checked = checked or len(self.missing)
        listing = "\n".join(f"  {p}" for p in self.missing)
        super().__init__(f"Hook script paths do not exist:\n{listing}")


def load_template(path: Path) -> str:
    """Read the template file.

    Args:
        path: Path to the template.

    Returns:
        str: Raw template text.

    Raises:
        TemplateNotFoundError: If the file is missing or unreadable.
    """
    if not path.is_file():
        raise TemplateNotFoundError(f"Template not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateNotFoundError(f"Template not readable: {path} ({exc})") from exc


def resolve(template: str, install_root: Path | str, placeholder: str = PLACEHOLDER) -> str:
    """Substitute every placeholder occurrence with the installation root.

    Pure text replacement; the result is not guaranteed to be valid JSON.

    Args:
        template: Raw template text.
        install_root: Path that replaces the placeholder.
        placeholder: Token to replace.

    Returns:
        str: The resolved text, with no placeholder left.
    """
    count = template.count(placeholder)
    logger.debug("Replacing %d occurrence(s) of %s with %s", count, placeholder, install_root)
    return template.replace(placeholder, str(install_root))


def parse(resolved_text: str) -> Any:
    """Parse the resolved text as JSON.

    Raises:
        InvalidJSONError: With the parser's message, line and column.
    """
    try:
        return json.loads(resolved_text)
    except json.JSONDecodeError as exc:
        raise InvalidJSONError(f"Resolved template is not valid JSON: {exc}") from exc


def extract_hook_paths(document: Any) -> list[str]:
    """Collect every non-empty hook command path, in order, without duplicates.

    A document with no hooks section (or a non-object document) has no paths.

    Raises:
        HookSchemaError: If the hooks section has the wrong shape.
    """
    if not isinstance(document, dict):
        return []
    hooks = document.get("hooks")
    if not hooks:
        return []

    try:
        section = HooksSection.model_validate(hooks)
    except ValidationError as exc:
        raise HookSchemaError(f"Invalid hooks section: {exc}") from exc

    paths = section.command_paths()
    logger.debug("Found %d hook command path(s)", len(paths))
    return paths


def validate(paths: Iterable[str]) -> ValidationResult:
    """Check that each path is an existing regular file.

    All paths are checked; the result lists every missing one.
    """
    checked: list[str] = []
    missing: list[str] = []
    for path in dict.fromkeys(paths):
        checked.append(path)
        if not Path(path).is_file():
            logger.debug("Missing hook script: %s", path)
            missing.append(path)
    return ValidationResult(checked=checked, missing=missing)


def prepare(config: ResolverConfig) -> ResolvedSettings:
    """Run the whole pipeline without side effects.

    Args:
        config: The resolver configuration.

    Returns:
        ResolvedSettings: Resolved text, parsed document and validation result.

    Raises:
        TemplateNotFoundError: Template missing.
        InvalidJSONError: Substituted text is not JSON.
        HookSchemaError: Hooks section has the wrong shape.
    """
    logger.debug("Resolving %s against %s", config.template, config.install_root)
    template = load_template(config.template)
    text = resolve(template, config.install_root, config.placeholder)
    document = parse(text)
    paths = extract_hook_paths(document)
    return ResolvedSettings(text=text, document=document, paths=paths, validation=validate(paths))


def require_valid(settings: ResolvedSettings) -> ResolvedSettings:
    """Raise MissingHookPathsError unless every hook path exists."""
    if not settings.validation.ok:
        raise MissingHookPathsError(settings.validation.missing, len(settings.validation.checked))
    return settings


def render(text: str) -> str:
    """Output form of a resolved document: exactly one trailing newline."""
    return text.rstrip("\n") + "\n"


def write_document(text: str, target: Path) -> Path:
    """Write the rendered document to target, creating parent directories.

    Args:
        text: Resolved document text.
        target: Destination file.

    Returns:
        Path: The written file.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render(text), encoding="utf-8")
    logger.debug("Wrote %s", target)
    return target
