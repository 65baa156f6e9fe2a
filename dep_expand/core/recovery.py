"""Retry an expansion against a private copy of the package.

Packages downloaded from a registry live outside any workspace, and cargo
refuses to build them in place ("virtual manifests must be configured with
[workspace]"). A copy in a scratch directory has no such parent, so the same
invocation succeeds there.
"""
from __future__ import annotations

import logging

from dep_expand.core.build import run_build
from dep_expand.core.env import CargoEnv
from dep_expand.core.errors import ExpandError, InvocationError, IoError
from dep_expand.core.model import Package
from dep_expand.core.options import ExpandOptions
from dep_expand.core.process import CommandRunner, TreeCopier, copy_tree, run_command
from dep_expand.core.scratch import SCRATCH_PREFIX, scratch_dir

logger = logging.getLogger(__name__)


def recover_missing_workspace(
    options: ExpandOptions,
    package: Package,
    *,
    env: CargoEnv | None = None,
    run: CommandRunner = run_command,
    copy: TreeCopier = copy_tree,
) -> str:
    """Copy the package into a scratch dir and run the build there, once."""
    with scratch_dir(f"{SCRATCH_PREFIX}-{package.name}-") as tmp:
        src = package.package_dir
        try:
            copied = copy(src, tmp)
        except OSError as e:
            raise IoError(
                code="E_IO",
                message=f"failed to copy {src} for isolated expansion: {e}",
                package=package.name,
                detail=str(tmp),
            ) from e

        manifest = copied / package.manifest_path.name
        logger.info("Retrying expansion of %s from copy at %s", package.name, copied)
        try:
            return run_build(options, manifest, package=package.name, env=env, run=run)
        except ExpandError as e:
            if not e.recoverable:
                raise
            # Only one retry; the caller never sees a recoverable error.
            raise InvocationError(
                code="E_INVOCATION",
                message=f"expansion failed again after isolating the package: {e.message}",
                package=package.name,
                detail=e.detail,
            ) from e
