from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from dep_expand.core.env import CargoEnv
from dep_expand.core.errors import MetadataQueryFailed, PackageNotFound
from dep_expand.core.model import Package
from dep_expand.core.process import CommandRunner, run_command

logger = logging.getLogger(__name__)


def metadata_args(manifest_path: Path, cargo: str = "cargo") -> list[str]:
    # all features so a later expansion may request any subset of them
    return [
        cargo,
        "metadata",
        "--format-version",
        "1",
        "--all-features",
        "--manifest-path",
        str(manifest_path),
    ]


def _package_from_obj(obj: dict[str, Any]) -> Package:
    return Package(
        name=str(obj["name"]),
        version=str(obj.get("version", "")),
        id=str(obj.get("id", "")),
        manifest_path=Path(obj["manifest_path"]),
        source=obj.get("source"),
    )


def resolve_metadata(
    manifest_path: Path,
    *,
    env: CargoEnv | None = None,
    run: CommandRunner = run_command,
    package: str | None = None,
) -> list[Package]:
    """Return every package of the dependency graph rooted at `manifest_path`."""
    env = env or CargoEnv.from_environ()
    args = metadata_args(manifest_path, env.cargo)
    logger.debug("Running %s", args)

    try:
        proc = run(args, capture_stdout=True)
    except OSError as e:
        raise MetadataQueryFailed(
            code="E_METADATA",
            package=package,
            message=f"failed to run cargo metadata: {e}",
            detail=str(manifest_path),
        ) from e

    if proc.returncode != 0:
        raise MetadataQueryFailed(
            code="E_METADATA",
            package=package,
            message=f"cargo metadata exited with status {proc.returncode}",
            detail=proc.stderr.strip(),
        )

    try:
        data = json.loads(proc.stdout or "")
        return [_package_from_obj(p) for p in data["packages"]]
    except (ValueError, KeyError, TypeError) as e:
        raise MetadataQueryFailed(
            code="E_METADATA",
            package=package,
            message=f"unreadable cargo metadata output: {e}",
            detail=str(manifest_path),
        ) from e


def find_package(
    name: str,
    manifest_path: Path,
    *,
    env: CargoEnv | None = None,
    run: CommandRunner = run_command,
) -> Package:
    """Look up a package by exact name.

    When several packages share the name (e.g. two versions of one crate),
    the first one in metadata order wins.
    """
    packages = resolve_metadata(manifest_path, env=env, run=run, package=name)
    matches = [p for p in packages if p.name == name]
    if not matches:
        raise PackageNotFound(
            code="E_PACKAGE_NOT_FOUND",
            message=f"no package found with matching name: `{name}`",
            package=name,
            detail=str(manifest_path),
        )
    if len(matches) > 1:
        logger.warning(
            "%d packages named %s in the dependency graph; using %s",
            len(matches),
            name,
            matches[0].id,
        )
    return matches[0]
