"""Shared fixtures: a throwaway workspace on disk and a recording command runner."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import pytest

from buildall.config import WorkspaceConfig
from buildall.errors import CommandError


def write_manifest(project: Path, version: str = "0.5.0", name: str | None = None) -> Path:
    project.mkdir(parents=True, exist_ok=True)
    manifest = project / "Cargo.toml"
    manifest.write_text(
        f'[package]\nname = "{name or project.name}"\nversion = "{version}"\nedition = "2018"\n',
        encoding="utf-8",
    )
    return manifest


def write_script(path: Path, body: str, *, executable: bool = True) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    if executable:
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@dataclass
class RecordingRunner:
    """Stands in for `run_command`; fails any call whose key is in `failures`."""

    failures: dict[tuple[str, str], int] = field(default_factory=dict)
    calls: list[tuple[tuple[str, ...], Path]] = field(default_factory=list)
    envs: list[Mapping[str, str] | None] = field(default_factory=list)

    @staticmethod
    def key(cmd: list[str], cwd: Path) -> tuple[str, str]:
        step = cmd[1] if cmd[0] == "cargo" else Path(cmd[0]).name
        return (Path(cwd).name, step)

    def __call__(self, cmd: list[str], *, cwd: Path, env: Mapping[str, str] | None = None) -> None:
        self.calls.append((tuple(cmd), Path(cwd)))
        self.envs.append(env)
        code = self.failures.get(self.key(cmd, cwd))
        if code:
            raise CommandError(cmd, Path(cwd), code)

    def fail(self, project: str, step: str, code: int = 101) -> None:
        self.failures[(project, step)] = code

    @property
    def steps(self) -> list[tuple[str, str]]:
        return [self.key(list(cmd), cwd) for cmd, cwd in self.calls]


@pytest.fixture()
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture()
def workspace(tmp_path: Path) -> WorkspaceConfig:
    root = tmp_path / "ws"
    for name in ("lib", "codegen", "contrib"):
        write_manifest(root / name)
    (root / "examples").mkdir()
    return WorkspaceConfig(
        lib_dir=root / "lib",
        codegen_dir=root / "codegen",
        contrib_dir=root / "contrib",
        examples_dir=root / "examples",
        workspace_dir=root,
        cargo_bin_dir=None,
    )


@pytest.fixture()
def keep_cwd():
    before = os.getcwd()
    yield before
    assert os.getcwd() == before


@pytest.fixture(autouse=True)
def reset_buildall_logger():
    """`cli.setup_logging` detaches the package logger from the root; undo that."""
    yield
    pkg_logger = logging.getLogger("buildall")
    pkg_logger.handlers.clear()
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)
