"""
orchestrator.py

Responsibility: drive one full run over the workspace.

High-level flow:
1) Refresh dependencies (`cargo update`) once
2) Build + test lib, codegen, contrib, in that order
3) Check that the three crates declare the same version
4) For every example: bootstrap if it has a script, then build + test

Steps 1-3 are fatal on failure. In step 4 a failed bootstrap only skips that
example; a failed example build aborts unless `abort_on_example_failure` is
switched off in the config.

Failures are captured into the returned `RunResult` rather than raised, so
callers can see exactly which step stopped the run.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path

from buildall.cargo import Cargo
from buildall.config import WorkspaceConfig
from buildall.errors import BuildAllError, BuildError
from buildall.examples import BootstrapOutcome, discover_examples, maybe_bootstrap
from buildall.process import CommandRunner, run_command
from buildall.versions import VersionRecord, check_versions_match

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    INIT = "init"
    DEPENDENCIES_REFRESHED = "dependencies-refreshed"
    REQUIRED_BUILT = "required-built"
    VERSIONS_CHECKED = "versions-checked"
    EXAMPLES_PROCESSING = "examples-processing"
    DONE = "done"
    ABORTED = "aborted"


class ExampleStatus(enum.Enum):
    BUILT = "built"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ExampleResult:
    path: Path
    bootstrap: BootstrapOutcome
    status: ExampleStatus
    error: BuildError | None = None


@dataclass
class RunResult:
    stage: Stage = Stage.INIT
    required_built: int = 0
    versions: list[VersionRecord] = field(default_factory=list)
    examples: list[ExampleResult] = field(default_factory=list)
    error: BuildAllError | None = None

    @property
    def ok(self) -> bool:
        if self.stage is not Stage.DONE or self.error is not None:
            return False
        return not any(e.status is ExampleStatus.FAILED for e in self.examples)

    @property
    def skipped(self) -> list[Path]:
        return [e.path for e in self.examples if e.status is ExampleStatus.SKIPPED]


class Orchestrator:
    def __init__(
        self,
        config: WorkspaceConfig,
        *,
        runner: CommandRunner = run_command,
        cargo: Cargo | None = None,
        include_examples: bool = True,
    ) -> None:
        self.config = config
        self._runner = runner
        self._cargo = cargo or Cargo(runner, executable=config.package_manager, bin_dir=config.cargo_bin_dir)
        self._include_examples = include_examples

    def run(self) -> RunResult:
        result = RunResult()
        try:
            self._run(result)
        except BuildAllError as e:
            logger.error("%s", e)
            result.error = e
            result.stage = Stage.ABORTED
        return result

    def _run(self, result: RunResult) -> None:
        cfg = self.config

        self._cargo.refresh_dependencies(cfg.workspace_dir)
        result.stage = Stage.DEPENDENCIES_REFRESHED

        for name, path in cfg.required:
            logger.debug("Required component %s: %s", name, path)
            self._cargo.build_and_test(path)
            result.required_built += 1
        result.stage = Stage.REQUIRED_BUILT

        result.versions = check_versions_match([p for _n, p in cfg.required], mode=cfg.version_parsing)
        logger.info(":: Versions match (%s).", result.versions[0].version if result.versions else "")
        result.stage = Stage.VERSIONS_CHECKED

        if not self._include_examples:
            logger.info(":: Examples disabled for this run.")
            result.stage = Stage.DONE
            return

        result.stage = Stage.EXAMPLES_PROCESSING
        for example in discover_examples(cfg.examples_dir, skip=cfg.skip_examples):
            result.examples.append(self._process_example(example))

        result.stage = Stage.DONE
        if result.skipped:
            logger.warning(":: Skipped examples: %s", ", ".join(p.name for p in result.skipped))

    def _process_example(self, example: Path) -> ExampleResult:
        outcome = maybe_bootstrap(example, self._runner, self.config.bootstrap_script)
        if outcome is BootstrapOutcome.FAILED:
            return ExampleResult(example, outcome, ExampleStatus.SKIPPED)

        try:
            self._cargo.build_and_test(example)
        except BuildError as e:
            if self.config.abort_on_example_failure:
                raise
            logger.error("%s (continuing with the remaining examples)", e)
            return ExampleResult(example, outcome, ExampleStatus.FAILED, e)
        return ExampleResult(example, outcome, ExampleStatus.BUILT)
