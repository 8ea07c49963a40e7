"""
buildall package

This package builds and tests every crate in the workspace as a CLI-first utility.

Key responsibilities are split across modules:
- `config.py`: load the workspace config (YAML or `config.sh`) into a typed model
- `process.py`: run external commands with an explicit working directory
- `cargo.py`: dependency update, build and test via the package manager
- `versions.py`: check that the required crates declare the same version
- `examples.py`: discover example projects and run their bootstrap scripts
- `orchestrator.py`: sequence a full run and decide which failures are fatal
- `cli.py`: CLI entrypoint (config -> orchestrator -> exit status)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
