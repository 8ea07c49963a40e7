"""
config.py

Responsibility: Load the workspace configuration into a deterministic, typed model.

Two input shapes are accepted:
- A YAML mapping (recommended), e.g. `buildall.yaml`.
- A shell-style `KEY=value` file such as the `config.sh` the old test script
  sourced (best-effort: `export`, quotes and `$VAR` references to earlier
  assignments or `$SCRIPT_DIR` handled).

Relative paths resolve against the directory holding the config file.
`BUILDALL_<KEY>` environment variables override values from the file.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import Any, Mapping

import yaml

from buildall.errors import ConfigError

DEFAULT_CONFIG_NAMES = ("buildall.yaml", "buildall.yml", "scripts/config.sh")

VERSION_PARSING_MODES = ("literal", "toml")

# Bootstrap failures skip the example; build/test failures of an example
# abort the run like any required component would.
ABORT_ON_EXAMPLE_FAILURE = True

_REQUIRED_KEYS = ("lib_dir", "codegen_dir", "contrib_dir", "examples_dir")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

# Variables every config.sh may reference; they name the config file's directory.
_SHELL_SEEDS = ("SCRIPT_DIR", "PWD")


@dataclass(frozen=True)
class WorkspaceConfig:
    """Directory layout and policy for one orchestrated run."""

    lib_dir: Path
    codegen_dir: Path
    contrib_dir: Path
    examples_dir: Path
    workspace_dir: Path
    package_manager: str = "cargo"
    cargo_bin_dir: Path | None = None
    bootstrap_script: str = "bootstrap.sh"
    skip_examples: tuple[str, ...] = ()
    version_parsing: str = "literal"
    abort_on_example_failure: bool = ABORT_ON_EXAMPLE_FAILURE
    source: Path | None = field(default=None, compare=False)

    @property
    def required(self) -> tuple[tuple[str, Path], ...]:
        """Required components in build order: library, code generator, contrib."""
        return (("lib", self.lib_dir), ("codegen", self.codegen_dir), ("contrib", self.contrib_dir))


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _best_effort_shell_parse(text: str, base_dir: Path) -> dict[str, Any]:
    """
    Very small fallback parser for `config.sh`-style files:
    - Reads lines like `KEY=value` or `export KEY=value`
    - Expands `$NAME` / `${NAME}` from assignments above it, and `$SCRIPT_DIR`
      to `base_dir`; anything it can't expand is left in place
    - Ignores comments, blank lines and anything that isn't an assignment
    """
    seeds = {name: str(base_dir) for name in _SHELL_SEEDS}
    known: dict[str, str] = dict(seeds)
    out: dict[str, Any] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        if not k.isidentifier() or k in seeds:
            continue
        value = Template(_strip_quotes(v.strip())).safe_substitute(known)
        known[k] = value
        out[k] = value
    return out


def _parse_text(text: str, base_dir: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        data = None
    if isinstance(data, dict):
        return data
    data = _best_effort_shell_parse(text, base_dir)
    if not data:
        raise ConfigError("Config must be a YAML mapping or a shell file of KEY=value assignments.")
    return data


def _normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).strip().lower(): v for k, v in data.items()}


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    prefix = "BUILDALL_"
    return {k[len(prefix) :].lower(): v for k, v in environ.items() if k.startswith(prefix) and len(k) > len(prefix)}


def _resolve_path(raw: Any, base: Path, key: str) -> Path:
    value = str(raw).strip()
    if not value:
        raise ConfigError(f"`{key}` must not be empty.")
    if "$" in value:
        raise ConfigError(f"`{key}` refers to an unknown shell variable or command: {value!r}")
    path = Path(os.path.expanduser(value))
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def _parse_bool(raw: Any, key: str) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"`{key}` must be a boolean, got {raw!r}.")


def _parse_list(raw: Any, key: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        items = [s for s in re.split(r"[,\s]+", raw) if s]
    elif isinstance(raw, (list, tuple)):
        items = [str(s).strip() for s in raw if str(s).strip()]
    else:
        raise ConfigError(f"`{key}` must be a list or a comma separated string.")
    return tuple(sorted(set(items)))


def find_config(start: str | Path) -> Path | None:
    """Return the first default config file found under `start`, if any."""
    base = Path(start)
    for name in DEFAULT_CONFIG_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def build_config(data: Mapping[str, Any], *, base_dir: Path, source: Path | None = None) -> WorkspaceConfig:
    """
    Validate a raw mapping into a `WorkspaceConfig`.

    Required keys: lib_dir, codegen_dir, contrib_dir, examples_dir.
    Optional keys: workspace_dir, package_manager, cargo_bin_dir,
    bootstrap_script, skip_examples, version_parsing, abort_on_example_failure.
    """
    values = _normalize_keys(data)

    missing = [k for k in _REQUIRED_KEYS if not str(values.get(k) or "").strip()]
    if missing:
        raise ConfigError(f"Config must define {', '.join('`' + k + '`' for k in missing)}.")

    version_parsing = str(values.get("version_parsing") or "literal").strip().lower()
    if version_parsing not in VERSION_PARSING_MODES:
        raise ConfigError(f"`version_parsing` must be one of {', '.join(VERSION_PARSING_MODES)}, got {version_parsing!r}.")

    package_manager = str(values.get("package_manager") or "cargo").strip()
    bootstrap_script = str(values.get("bootstrap_script") or "bootstrap.sh").strip()
    if "/" in bootstrap_script or os.sep in bootstrap_script:
        raise ConfigError("`bootstrap_script` must be a bare file name.")

    bin_raw = values.get("cargo_bin_dir", "~/.cargo/bin")
    cargo_bin_dir = _resolve_path(bin_raw, base_dir, "cargo_bin_dir") if bin_raw else None

    abort_raw = values.get("abort_on_example_failure")
    abort = ABORT_ON_EXAMPLE_FAILURE if abort_raw is None else _parse_bool(abort_raw, "abort_on_example_failure")

    lib_dir = _resolve_path(values["lib_dir"], base_dir, "lib_dir")
    codegen_dir = _resolve_path(values["codegen_dir"], base_dir, "codegen_dir")
    contrib_dir = _resolve_path(values["contrib_dir"], base_dir, "contrib_dir")

    # The dependency update runs where the three required crates meet.
    workspace_raw = values.get("workspace_dir")
    if workspace_raw:
        workspace_dir = _resolve_path(workspace_raw, base_dir, "workspace_dir")
    else:
        workspace_dir = Path(os.path.commonpath([lib_dir, codegen_dir, contrib_dir]))

    return WorkspaceConfig(
        lib_dir=lib_dir,
        codegen_dir=codegen_dir,
        contrib_dir=contrib_dir,
        examples_dir=_resolve_path(values["examples_dir"], base_dir, "examples_dir"),
        workspace_dir=workspace_dir,
        package_manager=package_manager,
        cargo_bin_dir=cargo_bin_dir,
        bootstrap_script=bootstrap_script,
        skip_examples=_parse_list(values.get("skip_examples"), "skip_examples"),
        version_parsing=version_parsing,
        abort_on_example_failure=abort,
        source=source,
    )


def load_config(config_path: str | Path, *, environ: Mapping[str, str] | None = None) -> WorkspaceConfig:
    """
    Parse a config file into a `WorkspaceConfig`.

    Paths in a `config.sh` conventionally hang off `$SCRIPT_DIR`; those, like
    any relative path, resolve against the config file's own directory.
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"Config file does not exist: {path}")
    data = _normalize_keys(_parse_text(path.read_text(encoding="utf-8"), path.resolve().parent))
    data.update(_env_overrides(os.environ if environ is None else environ))
    return build_config(data, base_dir=path.resolve().parent, source=path)
