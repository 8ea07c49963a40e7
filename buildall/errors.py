"""
errors.py

Responsibility: the exception hierarchy shared by every buildall module.

Everything is fatal except `BootstrapError`, which `examples.maybe_bootstrap`
converts into a "skip this example" outcome. Only `cli.main` turns these into
a process exit status.
"""

from __future__ import annotations

from pathlib import Path


class BuildAllError(RuntimeError):
    pass


class ConfigError(BuildAllError):
    pass


class InvalidPathError(BuildAllError):
    def __init__(self, path: str | Path | None, what: str = "build and test") -> None:
        self.path = path
        super().__init__(f"Tried to {what} inside '{path or ''}', but it is an invalid path.")


class CommandError(BuildAllError):
    """A child process exited non-zero (or could not be started)."""

    def __init__(self, cmd: list[str], cwd: Path, returncode: int | None, output: str = "") -> None:
        self.cmd = cmd
        self.cwd = cwd
        self.returncode = returncode
        self.output = output
        status = "could not be started" if returncode is None else f"exited with status {returncode}"
        msg = f"Command {status}: {' '.join(cmd)} (in '{cwd}')"
        if output:
            msg = f"{msg}\n\n{output}"
        super().__init__(msg)


class DependencyRefreshError(BuildAllError):
    pass


class BuildError(BuildAllError):
    """A build step failed for a project directory."""

    step = "build"

    def __init__(self, path: Path, cause: CommandError | None = None) -> None:
        self.path = path
        self.cause = cause
        detail = f" (exit status {cause.returncode})" if cause is not None and cause.returncode is not None else ""
        super().__init__(f"Step '{self.step}' failed in '{path}'{detail}")


class TestError(BuildError):
    step = "test"

    # Keep pytest from trying to collect this as a test class.
    __test__ = False


class MissingManifestError(BuildAllError):
    def __init__(self, manifest: Path) -> None:
        self.manifest = manifest
        super().__init__(f"Cargo configuration file '{manifest}' does not exist.")


class ManifestParseError(BuildAllError):
    pass


class VersionMismatchError(BuildAllError):
    """`path` is the project directory; `manifest` the Cargo.toml inside it."""

    def __init__(self, path: Path, expected: str, actual: str) -> None:
        self.path = path
        self.manifest = path / "Cargo.toml"
        self.expected = expected
        self.actual = actual
        super().__init__(f"Versions differ in '{self.manifest}'. {actual} != {expected}")


class BootstrapError(BuildAllError):
    """Non-fatal: the orchestrator skips the example instead of aborting."""

    def __init__(self, script: Path, cause: CommandError) -> None:
        self.script = script
        self.cause = cause
        super().__init__(f"Running bootstrap script ({script}) failed!")
