"""
examples.py

Responsibility: find the example projects and run their one-time bootstrap scripts.

A bootstrap failure is the one error that never propagates: it becomes
`BootstrapOutcome.FAILED` and the orchestrator skips that example.
"""

from __future__ import annotations

import enum
import logging
import os
from pathlib import Path
from typing import Collection, Iterator

from buildall.errors import BootstrapError, CommandError, InvalidPathError
from buildall.process import CommandRunner, run_command

logger = logging.getLogger(__name__)

BOOTSTRAP_SCRIPT = "bootstrap.sh"


class BootstrapOutcome(enum.Enum):
    NOT_NEEDED = "not-needed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def discover_examples(root: str | Path, *, skip: Collection[str] = ()) -> Iterator[Path]:
    """
    Yield the immediate sub-directories of `root`, sorted by name.

    Plain files (READMEs, shared scripts) are never examples. Each call lists
    the directory afresh.
    """
    base = Path(root)
    if not base.is_dir():
        raise InvalidPathError(base, "discover examples")
    for entry in sorted(base.iterdir(), key=lambda p: p.name):
        if not entry.is_dir():
            continue
        if entry.name in skip:
            logger.info(":: Skipping %s (listed in skip_examples).", entry)
            continue
        yield entry


def bootstrap_script(example: str | Path, script_name: str = BOOTSTRAP_SCRIPT) -> Path | None:
    """Return the example's bootstrap script if it exists and is executable."""
    script = Path(example) / script_name
    if script.is_file() and os.access(script, os.X_OK):
        return script
    return None


def bootstrap_command(script: Path) -> list[str]:
    """
    Command line for a bootstrap script. A script without a `#!` line is
    handed to /bin/sh, the way a shell runs it; exec would fail with ENOEXEC.
    """
    path = str(script.resolve())
    try:
        with script.open("rb") as f:
            has_shebang = f.read(2) == b"#!"
    except OSError:
        # Unreadable: let the exec attempt report the failure.
        has_shebang = True
    return [path] if has_shebang else ["/bin/sh", path]


def run_bootstrap(example: str | Path, runner: CommandRunner = run_command, script_name: str = BOOTSTRAP_SCRIPT) -> bool:
    """
    Run the bootstrap script inside `example`. Returns False when there is
    nothing to run, raises BootstrapError when the script fails.
    """
    script = bootstrap_script(example, script_name)
    if script is None:
        return False
    logger.info(":: Bootstrapping %s...", example)
    try:
        runner(bootstrap_command(script), cwd=Path(example))
    except CommandError as e:
        raise BootstrapError(script, e) from e
    return True


def maybe_bootstrap(
    example: str | Path,
    runner: CommandRunner = run_command,
    script_name: str = BOOTSTRAP_SCRIPT,
) -> BootstrapOutcome:
    try:
        ran = run_bootstrap(example, runner, script_name)
    except BootstrapError as e:
        logger.warning(":: %s", e)
        logger.warning(":: Skipping %s.", example)
        logger.debug("Bootstrap failure detail: %s", e.cause)
        return BootstrapOutcome.FAILED
    return BootstrapOutcome.SUCCEEDED if ran else BootstrapOutcome.NOT_NEEDED
