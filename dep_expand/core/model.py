from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Package:
    name: str
    version: str
    id: str
    manifest_path: Path

    # e.g. "registry+https://github.com/rust-lang/crates.io-index";
    # None for path and workspace members.
    source: Optional[str] = None

    @property
    def package_dir(self) -> Path:
        return self.manifest_path.parent

    @property
    def is_registry(self) -> bool:
        return bool(self.source) and self.source.startswith("registry+")
