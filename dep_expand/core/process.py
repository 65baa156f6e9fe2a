from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stderr: str
    stdout: Optional[str] = None


class CommandRunner(Protocol):
    def __call__(self, args: list[str], *, capture_stdout: bool = False) -> ProcessResult: ...


class TreeCopier(Protocol):
    def __call__(self, src: Path, dest_parent: Path) -> Path: ...


def run_command(args: list[str], *, capture_stdout: bool = False) -> ProcessResult:
    """Run `args` to completion, always capturing stderr.

    stdout is inherited unless `capture_stdout` is set. Output is decoded as
    UTF-8 with invalid bytes replaced. Spawn failures raise OSError.
    """
    proc = subprocess.run(
        args,
        stdout=subprocess.PIPE if capture_stdout else None,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
    )
    return ProcessResult(
        returncode=proc.returncode,
        stderr=proc.stderr or "",
        stdout=proc.stdout if capture_stdout else None,
    )


def copy_tree(src: Path, dest_parent: Path) -> Path:
    """Copy directory `src` into `dest_parent`, keeping its directory name."""
    dest = Path(dest_parent) / Path(src).name
    shutil.copytree(src, dest)
    return dest
