"""
cli.py

Responsibility: CLI entrypoint for buildall.

Commands:
- `run`: refresh deps -> build/test required crates -> check versions -> examples
- `check-versions`: only the version consistency check
- `list-examples`: show discovered examples and whether each has a bootstrap script

This module should orchestrate behavior but keep concerns isolated:
- Config loading: `config.py`
- Package manager calls: `cargo.py`
- Version check: `versions.py`
- Example discovery/bootstrap: `examples.py`
- Run sequencing: `orchestrator.py`

It is the only place that turns errors into a process exit status.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from pathlib import Path

from buildall import __version__
from buildall.config import VERSION_PARSING_MODES, WorkspaceConfig, find_config, load_config
from buildall.errors import BuildAllError, ConfigError
from buildall.examples import bootstrap_script, discover_examples
from buildall.orchestrator import Orchestrator
from buildall.versions import check_versions_match

logger = logging.getLogger("buildall")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class CLIError(RuntimeError):
    pass


def setup_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def _load(args: argparse.Namespace) -> WorkspaceConfig:
    config_path = Path(args.config) if args.config else find_config(Path.cwd())
    if config_path is None:
        raise CLIError("No config found (looked for buildall.yaml or scripts/config.sh); pass --config")
    cfg = load_config(config_path)

    overrides: dict[str, object] = {}
    if getattr(args, "examples_dir", None):
        overrides["examples_dir"] = Path(args.examples_dir).resolve()
    if getattr(args, "skip_example", None):
        overrides["skip_examples"] = tuple(sorted(set(cfg.skip_examples) | set(args.skip_example)))
    if getattr(args, "version_parsing", None):
        overrides["version_parsing"] = args.version_parsing
    if getattr(args, "continue_on_example_failure", False):
        overrides["abort_on_example_failure"] = False
    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def run_cmd(args: argparse.Namespace) -> int:
    cfg = _load(args)
    result = Orchestrator(cfg, include_examples=not bool(args.no_examples)).run()
    if result.ok:
        logger.info(":: All builds and tests passed.")
        return EXIT_OK
    return EXIT_FAILED


def check_versions_cmd(args: argparse.Namespace) -> int:
    cfg = _load(args)
    records = check_versions_match([p for _n, p in cfg.required], mode=cfg.version_parsing)
    for r in records:
        print(f"{r.path}\t{r.version}")
    return EXIT_OK


def list_examples_cmd(args: argparse.Namespace) -> int:
    cfg = _load(args)
    for example in discover_examples(cfg.examples_dir, skip=cfg.skip_examples):
        marker = "bootstrap" if bootstrap_script(example, cfg.bootstrap_script) else "-"
        print(f"{example.name}\t{marker}")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="buildall", description="Build and test every crate and example in the workspace")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-v", "--verbose", action="store_true", help="Log every command that is run")
    sub = p.add_subparsers(dest="command", required=True)

    def add_config(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--config", default=None, help="Config file (default: ./buildall.yaml or ./scripts/config.sh)")
        sp.add_argument("--version-parsing", choices=VERSION_PARSING_MODES, default=None, help="How to read Cargo.toml versions")

    r = sub.add_parser("run", help="Update deps, build and test everything, check versions")
    add_config(r)
    r.add_argument("--examples-dir", default=None, help="Examples root (overrides config)")
    r.add_argument("--skip-example", action="append", default=[], metavar="NAME", help="Do not process this example (repeatable)")
    r.add_argument("--no-examples", action="store_true", help="Stop after the version check")
    r.add_argument(
        "--continue-on-example-failure",
        action="store_true",
        help="Record example build/test failures and keep going (exit status is still non-zero)",
    )
    r.set_defaults(func=run_cmd)

    c = sub.add_parser("check-versions", help="Only check that lib, codegen and contrib versions match")
    add_config(c)
    c.set_defaults(func=check_versions_cmd)

    e = sub.add_parser("list-examples", help="List discovered examples")
    add_config(e)
    e.add_argument("--examples-dir", default=None, help="Examples root (overrides config)")
    e.set_defaults(func=list_examples_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(bool(args.verbose) or bool(os.environ.get("BUILDALL_VERBOSE")))
    try:
        return int(args.func(args))
    except (CLIError, ConfigError) as e:
        logger.error("%s", e)
        return EXIT_USAGE
    except BuildAllError as e:
        logger.error("%s", e)
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
