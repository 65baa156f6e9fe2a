from __future__ import annotations

import logging
from pathlib import Path

from dep_expand.core.env import CargoEnv
from dep_expand.core.errors import EmptyOutput, InvocationError, IoError, MissingWorkspace
from dep_expand.core.options import ExpandOptions
from dep_expand.core.process import CommandRunner, run_command
from dep_expand.core.scratch import SCRATCH_PREFIX, scratch_dir

logger = logging.getLogger(__name__)

MANIFEST_ERROR_PREFIX = "error: failed to parse manifest at"
VIRTUAL_MANIFEST_SUFFIX = "virtual manifests must be configured with [workspace]"


def build_args(
    options: ExpandOptions, manifest_path: Path, outfile: Path, cargo: str = "cargo"
) -> list[str]:
    """argv for one `cargo rustc` run that writes expanded source to `outfile`."""
    args = [cargo, "rustc"]
    args.append("--profile=test" if options.tests else "--profile=check")

    if options.release:
        args.append("--release")
    if options.features:
        args += ["--features", " ".join(options.features)]
    if options.all_features:
        args.append("--all-features")
    if options.no_default_features:
        args.append("--no-default-features")

    args += ["--lib", "--manifest-path", str(manifest_path)]

    for flag in options.unstable_flags:
        args += ["-Z", flag]

    args += ["--", "-o", str(outfile), "-Zunstable-options", "--pretty=expanded"]
    return args


def is_missing_workspace(stderr: str) -> bool:
    return stderr.startswith(MANIFEST_ERROR_PREFIX) and stderr.rstrip().endswith(
        VIRTUAL_MANIFEST_SUFFIX
    )


def _tail(text: str, lines: int = 20) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


def run_build(
    options: ExpandOptions,
    manifest_path: Path,
    *,
    package: str | None = None,
    env: CargoEnv | None = None,
    run: CommandRunner = run_command,
) -> str:
    """Expand the lib target of the package at `manifest_path`.

    Raises MissingWorkspace when cargo rejects the manifest as a bare
    virtual manifest; the caller decides whether to retry.
    """
    env = env or CargoEnv.from_environ()

    with scratch_dir(SCRATCH_PREFIX) as outdir:
        outfile = outdir / "expanded"
        args = build_args(options, manifest_path, outfile, env.cargo)
        logger.debug("Running %s", args)

        try:
            proc = run(args)
        except OSError as e:
            raise InvocationError(
                code="E_INVOCATION",
                message=f"failed to run {env.cargo}: {e}",
                package=package,
                detail=str(manifest_path),
            ) from e

        if proc.stderr:
            logger.debug("cargo stderr:\n%s", proc.stderr)

        if is_missing_workspace(proc.stderr):
            raise MissingWorkspace(
                code="E_MISSING_WORKSPACE",
                message=VIRTUAL_MANIFEST_SUFFIX,
                package=package,
                detail=str(manifest_path),
            )

        try:
            content = outfile.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IoError(
                code="E_IO",
                message=f"could not read expanded output (cargo exit status {proc.returncode}): {e}",
                package=package,
                detail=_tail(proc.stderr),
            ) from e

    if not content:
        raise EmptyOutput(
            code="E_EMPTY_OUTPUT",
            message="rustc produced no expanded output",
            package=package,
            detail=_tail(proc.stderr),
        )
    return content
