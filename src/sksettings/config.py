"""Runtime configuration for the resolver.

The installation root is computed once at startup and handed to the
resolver explicitly, so every pipeline step can run against any root.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import PLACEHOLDER, TEMPLATE_NAME

ROOT_ENV_VAR = "SKSETTINGS_ROOT"


def default_install_root() -> Path:
    """Resolve the default installation root, respecting SKSETTINGS_ROOT.

    Returns:
        Path: The env var value if set, otherwise the working directory.
    """
    env = os.environ.get(ROOT_ENV_VAR)
    if env:
        return Path(env)
    return Path.cwd()


def _absolute(path: Path | str) -> Path:
    return Path(path).expanduser().absolute()


class ResolverConfig(BaseModel):
    """Everything the pipeline needs to know about this machine.

    Args:
        install_root: Absolute path substituted for the placeholder.
        template: Template file (default: <install_root>/settings.template.json).
        placeholder: The token to replace.
    """

    model_config = ConfigDict(frozen=True)

    install_root: Path = Field(description="Absolute installation root")
    template: Path = Field(description="Template file to resolve")
    placeholder: str = Field(default=PLACEHOLDER, description="Token replaced by the root")

    @model_validator(mode="before")
    @classmethod
    def default_template(cls, data: Any) -> Any:
        """Place the template under the installation root unless given."""
        if isinstance(data, dict) and data.get("template") is None and "install_root" in data:
            data = {**data, "template": _absolute(data["install_root"]) / TEMPLATE_NAME}
        return data

    @field_validator("install_root", "template")
    @classmethod
    def absolute_path(cls, v: Path) -> Path:
        """Expand ~ and anchor relative paths at the working directory."""
        return _absolute(v)

    @field_validator("placeholder")
    @classmethod
    def non_empty_placeholder(cls, v: str) -> str:
        if not v:
            raise ValueError("placeholder token must not be empty")
        return v


def load_config(
    install_root: Optional[Path] = None,
    template: Optional[Path] = None,
) -> ResolverConfig:
    """Build the resolver configuration from CLI values and the environment.

    Args:
        install_root: Explicit root, overrides SKSETTINGS_ROOT and the cwd.
        template: Explicit template path.

    Returns:
        ResolverConfig: The frozen configuration.
    """
    root = install_root if install_root is not None else default_install_root()
    return ResolverConfig(install_root=root, template=template)
