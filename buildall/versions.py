"""
versions.py

Responsibility: read each required crate's declared version and make sure they agree.

Two ways of reading the version out of `Cargo.toml`:
- "literal": the first line mentioning `version`, third space-separated
  field. This matches what the release scripts have always compared
  (`grep version | head -n 1 | cut -d' ' -f3`), quotes included.
- "toml": `package.version` from a real TOML parse.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from buildall.errors import ManifestParseError, MissingManifestError, VersionMismatchError

MANIFEST_NAME = "Cargo.toml"


@dataclass(frozen=True)
class VersionRecord:
    path: Path
    version: str


def manifest_path(project: str | Path) -> Path:
    return Path(project) / MANIFEST_NAME


def _literal_version(text: str) -> str:
    # grep(1) splits on "\n" only; anything else stays part of the line.
    for line in text.split("\n"):
        if "version" in line:
            # cut(1) passes through lines that have no delimiter at all.
            if " " not in line:
                return line
            fields = line.split(" ")
            return fields[2] if len(fields) >= 3 else ""
    return ""


def _toml_version(text: str, manifest: Path) -> str:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ManifestParseError(f"Could not parse '{manifest}': {e}") from e

    package = data.get("package")
    if isinstance(package, dict) and isinstance(package.get("version"), str):
        return package["version"]
    workspace = data.get("workspace")
    if isinstance(workspace, dict):
        ws_package = workspace.get("package")
        if isinstance(ws_package, dict) and isinstance(ws_package.get("version"), str):
            return ws_package["version"]
    raise ManifestParseError(f"'{manifest}' does not declare a package version.")


def read_version(project: str | Path, *, mode: str = "literal") -> VersionRecord:
    manifest = manifest_path(project)
    if not manifest.is_file():
        raise MissingManifestError(manifest)
    try:
        raw = manifest.read_bytes()
    except OSError as e:
        raise ManifestParseError(f"Could not read '{manifest}': {e}") from e

    if mode == "toml":
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"Could not read '{manifest}': {e}") from e
        version = _toml_version(text, manifest)
    elif mode == "literal":
        # Bytes that are not UTF-8 pass through, as they do for grep and cut.
        version = _literal_version(raw.decode("utf-8", errors="surrogateescape"))
    else:
        raise ValueError(f"Unknown version parsing mode: {mode!r}")
    return VersionRecord(path=Path(project), version=version)


def check_versions_match(paths: Iterable[str | Path], *, mode: str = "literal") -> list[VersionRecord]:
    """
    Compare every project's version against the first one's.

    Raises VersionMismatchError for the first project that differs, in input
    order. Returns the records read so far on success.
    """
    records: list[VersionRecord] = []
    reference: VersionRecord | None = None
    for p in paths:
        record = read_version(p, mode=mode)
        if reference is None:
            reference = record
        elif record.version != reference.version:
            raise VersionMismatchError(Path(p), reference.version, record.version)
        records.append(record)
    return records
