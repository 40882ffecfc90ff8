"""SKSettings CLI — resolve settings.template.json for this machine.

Usage:
    sksettings                    Print resolved settings to stdout
    sksettings --output FILE      Write resolved settings to FILE
    sksettings --merge FILE       Merge resolved settings into existing FILE
    sksettings --validate         Resolve and check hook paths, write nothing
    sksettings --template FILE    Use a custom template
    sksettings --root DIR         Override the installation root

Every mode validates hook paths first; on any failure nothing is printed
to stdout and nothing is written.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import ResolverConfig, load_config
from .merge import merge_into_file
from .models import ResolveMode
from .resolver import (
    MissingHookPathsError,
    SettingsError,
    prepare,
    render,
    require_valid,
    write_document,
)

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)

logger = logging.getLogger("sksettings.cli")


def _report_missing(missing: list[str], checked: int) -> None:
    err_console.print(
        f"[red]Error:[/red] Hook script paths do not exist "
        f"({len(missing)} of {checked} missing):"
    )
    for path in missing:
        err_console.print(f"  {escape(path)}")


def run(
    config: ResolverConfig,
    mode: ResolveMode = ResolveMode.EMIT,
    output: Optional[Path] = None,
) -> int:
    """Resolve, validate and deliver the settings document.

    Args:
        config: Resolver configuration.
        mode: What to do with the validated document.
        output: Target file for write and merge modes.

    Returns:
        int: Process exit status.

    Raises:
        ValueError: If write or merge mode is given no output file.
    """
    if mode in (ResolveMode.WRITE, ResolveMode.MERGE) and output is None:
        raise ValueError(f"{mode.value} mode needs an output file")

    try:
        settings = prepare(config)

        if mode == ResolveMode.VALIDATE:
            if not settings.validation.ok:
                _report_missing(settings.validation.missing, len(settings.validation.checked))
                return 1
            console.print(
                f"[green]All hook paths valid.[/green] Template resolves correctly. "
                f"({len(settings.paths)} hook paths checked)"
            )
            return 0

        require_valid(settings)

        if mode == ResolveMode.MERGE:
            backup = merge_into_file(output, settings.text, settings.document)
            if backup is None:
                console.print(f"[green]Created:[/green] {escape(str(output))}")
            else:
                console.print(f"[green]Merged:[/green] {escape(str(output))}")
                console.print(f"  Backup: {escape(str(backup))}")
        elif mode == ResolveMode.WRITE:
            write_document(settings.text, output)
            console.print(f"[green]Wrote:[/green] {escape(str(output))}")
        else:
            click.echo(render(settings.text), nl=False)
    except MissingHookPathsError as exc:
        _report_missing(exc.missing, exc.checked)
        return 1
    except SettingsError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        return 1
    except OSError as exc:
        err_console.print(f"[red]Write failed:[/red] {escape(str(exc))}")
        return 1
    return 0


@click.command()
@click.version_option(__version__, prog_name="sksettings")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write resolved settings to FILE (parent dirs are created).",
)
@click.option(
    "--merge",
    "merge_target",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Merge resolved settings into an existing settings FILE.",
)
@click.option("--validate", is_flag=True, help="Check hook paths and report; write nothing.")
@click.option(
    "--template",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Template file (default: ROOT/settings.template.json).",
)
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Installation root substituted for $CLAUDE_CONFIG_DIR (default: SKSETTINGS_ROOT or cwd).",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr.")
def main(
    output: Optional[Path],
    merge_target: Optional[Path],
    validate: bool,
    template: Optional[Path],
    root: Optional[Path],
    verbose: bool,
) -> None:
    """Resolve a portable settings template for this machine.

    Replaces $CLAUDE_CONFIG_DIR with the installation root, checks the
    result is valid JSON and that every hook command exists, then prints
    or writes the resolved settings.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
            force=True,
        )

    config = load_config(install_root=root, template=template)
    logger.debug("Installation root: %s", config.install_root)

    if validate:
        mode, target = ResolveMode.VALIDATE, None
    elif merge_target is not None:
        mode, target = ResolveMode.MERGE, merge_target
    elif output is not None:
        mode, target = ResolveMode.WRITE, output
    else:
        mode, target = ResolveMode.EMIT, None

    sys.exit(run(config, mode, target))


if __name__ == "__main__":
    main()
