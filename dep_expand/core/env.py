from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class CargoEnv:
    """Process environment the expander depends on, captured once.

    - cargo: executable used for `cargo metadata` and `cargo rustc`
    - manifest_dir: directory of the enclosing project's Cargo.toml
    """

    cargo: str = "cargo"
    manifest_dir: Optional[Path] = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "CargoEnv":
        env = os.environ if environ is None else environ
        cargo = (env.get("CARGO", "") or "").strip() or "cargo"
        manifest_dir = (env.get("CARGO_MANIFEST_DIR", "") or "").strip()
        return cls(cargo=cargo, manifest_dir=Path(manifest_dir) if manifest_dir else None)

    def default_manifest(self, start: str | None = None) -> Path:
        """Cargo.toml of the ambient project.

        Resolution order:
          1) CARGO_MANIFEST_DIR (set by cargo for build scripts)
          2) nearest ancestor of `start` (default: cwd) holding a Cargo.toml
          3) `start` itself, which lets cargo report the missing manifest
        """

        if self.manifest_dir is not None:
            return self.manifest_dir / "Cargo.toml"
        p = Path(start or os.getcwd()).resolve()
        for parent in [p] + list(p.parents):
            if (parent / "Cargo.toml").is_file():
                return parent / "Cargo.toml"
        return p / "Cargo.toml"
