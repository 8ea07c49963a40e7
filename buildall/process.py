"""
process.py

Responsibility: run external commands (package manager, bootstrap scripts).

Every command gets its working directory passed explicitly via `cwd=`; this
process never calls `os.chdir`, so the caller's working directory is the same
after a command as before it, whether or not the command failed.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Mapping, Protocol

from buildall.errors import CommandError

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    def __call__(self, cmd: list[str], *, cwd: Path, env: Mapping[str, str] | None = None) -> None: ...


def run_command(cmd: list[str], *, cwd: Path, env: Mapping[str, str] | None = None, capture: bool = False) -> None:
    """
    Run a subprocess command, raising a CommandError on failure.

    Output streams straight to the terminal unless `capture` is set, in which
    case it is folded into the error message on failure.
    """
    logger.debug("$ %s  (cwd=%s)", " ".join(cmd), cwd)
    try:
        if capture:
            subprocess.run(
                cmd,
                cwd=str(cwd),
                env=None if env is None else dict(env),
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        else:
            subprocess.run(cmd, cwd=str(cwd), env=None if env is None else dict(env), check=True)
    except subprocess.CalledProcessError as e:
        raise CommandError(cmd, cwd, e.returncode, e.stdout or "") from e
    except OSError as e:
        raise CommandError(cmd, cwd, None, str(e)) from e


def tool_env(
    base_env: Mapping[str, str] | None = None,
    *,
    extra_path: Path | None = None,
    backtrace: bool = True,
) -> dict[str, str]:
    """
    Child environment for package manager commands: the tool's bin directory
    first on PATH, and verbose failure backtraces switched on.
    """
    env = dict(os.environ if base_env is None else base_env)
    if extra_path is not None:
        current = env.get("PATH", "")
        env["PATH"] = f"{extra_path}{os.pathsep}{current}" if current else str(extra_path)
    if backtrace:
        env["RUST_BACKTRACE"] = "1"
    return env
