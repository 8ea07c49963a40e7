"""
cargo.py

Responsibility: Isolate all package manager (cargo) invocations.

This module must be the only place that:
- Knows the cargo sub-commands and flags (`update`, `build`, `test`, `--all-features`)
- Builds the child environment for them (PATH, RUST_BACKTRACE)
- Turns a failed command into a `BuildError` / `TestError` / `DependencyRefreshError`

It does not inspect test output; exit status is the only signal.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from buildall.errors import BuildError, CommandError, DependencyRefreshError, InvalidPathError, TestError
from buildall.process import CommandRunner, run_command, tool_env

logger = logging.getLogger(__name__)

ALL_FEATURES = "--all-features"


def ensure_project_dir(path: str | Path | None, *, what: str = "build and test") -> Path:
    """Return `path` as a Path if it names an existing directory, else raise InvalidPathError."""
    if path is None or not str(path).strip():
        raise InvalidPathError(path, what)
    p = Path(path)
    if not p.is_dir():
        raise InvalidPathError(p, what)
    return p


class Cargo:
    def __init__(
        self,
        runner: CommandRunner = run_command,
        *,
        executable: str = "cargo",
        bin_dir: Path | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._runner = runner
        self._executable = executable
        self._env = tool_env(base_env, extra_path=bin_dir)

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    def _cmd(self, *args: str) -> list[str]:
        return [self._executable, *args]

    def refresh_dependencies(self, workspace: str | Path) -> None:
        """
        Update the shared lock file once, before anything is built.
        """
        ws = ensure_project_dir(workspace, what="update dependencies")
        logger.info(":: Updating dependencies in '%s'...", ws)
        try:
            self._runner(self._cmd("update"), cwd=ws, env=self._env)
        except CommandError as e:
            raise DependencyRefreshError(f"Updating dependencies failed in '{ws}': {e}") from e

    def build_and_test(self, path: str | Path | None) -> None:
        """
        Build, then test, the project at `path` with all features enabled.

        The test step never runs if the build step fails.
        """
        project = ensure_project_dir(path)

        logger.info(":: Building '%s'...", project)
        try:
            self._runner(self._cmd("build", ALL_FEATURES), cwd=project, env=self._env)
        except CommandError as e:
            raise BuildError(project, e) from e

        logger.info(":: Running unit tests in '%s'...", project)
        try:
            self._runner(self._cmd("test", ALL_FEATURES), cwd=project, env=self._env)
        except CommandError as e:
            raise TestError(project, e) from e
