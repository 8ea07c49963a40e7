from __future__ import annotations

from pathlib import Path

import pytest

from buildall import cli
from buildall.orchestrator import RunResult, Stage

from conftest import write_manifest, write_script


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    for name in ("lib", "codegen", "contrib"):
        write_manifest(tmp_path / name, "0.5.0")
    (tmp_path / "examples" / "hello").mkdir(parents=True)
    write_script(tmp_path / "examples" / "todo" / "bootstrap.sh", "exit 0")
    path = tmp_path / "buildall.yaml"
    path.write_text(
        "lib_dir: lib\ncodegen_dir: codegen\ncontrib_dir: contrib\nexamples_dir: examples\n",
        encoding="utf-8",
    )
    return path


def test_check_versions_ok(config_file: Path, capsys) -> None:
    assert cli.main(["check-versions", "--config", str(config_file), "--version-parsing", "toml"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert out.count("0.5.0") == 3


def test_check_versions_mismatch(config_file: Path, capsys) -> None:
    write_manifest(config_file.parent / "codegen", "0.6.0")
    assert cli.main(["check-versions", "--config", str(config_file)]) == cli.EXIT_FAILED
    assert "Versions differ" in capsys.readouterr().err


def test_list_examples(config_file: Path, capsys) -> None:
    assert cli.main(["list-examples", "--config", str(config_file)]) == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == ["hello\t-", "todo\tbootstrap"]


def test_missing_config_is_usage_error(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert cli.main(["run"]) == cli.EXIT_USAGE
    assert "No config found" in capsys.readouterr().err


def test_run_passes_overrides_to_orchestrator(config_file: Path, monkeypatch) -> None:
    seen = {}

    class FakeOrchestrator:
        def __init__(self, config, *, include_examples=True):
            seen["config"] = config
            seen["include_examples"] = include_examples

        def run(self) -> RunResult:
            return RunResult(stage=Stage.DONE, required_built=3)

    monkeypatch.setattr(cli, "Orchestrator", FakeOrchestrator)
    code = cli.main(
        [
            "run",
            "--config",
            str(config_file),
            "--skip-example",
            "todo",
            "--continue-on-example-failure",
            "--no-examples",
        ]
    )
    assert code == cli.EXIT_OK
    assert seen["config"].skip_examples == ("todo",)
    assert seen["config"].abort_on_example_failure is False
    assert seen["include_examples"] is False


def test_run_failure_exit_status(config_file: Path, monkeypatch) -> None:
    class FailingOrchestrator:
        def __init__(self, config, *, include_examples=True):
            pass

        def run(self) -> RunResult:
            return RunResult(stage=Stage.ABORTED)

    monkeypatch.setattr(cli, "Orchestrator", FailingOrchestrator)
    assert cli.main(["run", "--config", str(config_file)]) == cli.EXIT_FAILED
