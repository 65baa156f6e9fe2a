from pathlib import Path

import pytest

from conftest import FakeCargo, MISSING_WORKSPACE_STDERR
from dep_expand.core.build import is_missing_workspace, run_build
from dep_expand.core.errors import EmptyOutput, InvocationError, IoError, MissingWorkspace
from dep_expand.core.options import ExpandOptions


def _run(cargo: FakeCargo, cargo_env, crate_dir: Path) -> str:
    return run_build(
        ExpandOptions(), crate_dir / "Cargo.toml", package="serde", env=cargo_env, run=cargo
    )


def test_returns_output_verbatim(crate_dir, cargo_env):
    text = "pub struct Serializer;\n\n"
    cargo = FakeCargo([], [("ok", text)])
    assert _run(cargo, cargo_env, crate_dir) == text
    assert len(cargo.builds) == 1


def test_scratch_dir_removed_after_success(crate_dir, cargo_env):
    cargo = FakeCargo([], [("ok", "fn f() {}\n")])
    _run(cargo, cargo_env, crate_dir)
    scratch = cargo.builds[0]["scratch"]
    assert scratch.name.startswith("dep-expand")
    assert not scratch.exists()


def test_empty_output(crate_dir, cargo_env):
    cargo = FakeCargo([], [("empty",)])
    with pytest.raises(EmptyOutput) as ei:
        _run(cargo, cargo_env, crate_dir)
    assert ei.value.code == "E_EMPTY_OUTPUT"
    assert ei.value.package == "serde"
    assert not cargo.builds[0]["scratch"].exists()


def test_missing_workspace_signature(crate_dir, cargo_env):
    cargo = FakeCargo([], [("missing_workspace",)])
    with pytest.raises(MissingWorkspace) as ei:
        _run(cargo, cargo_env, crate_dir)
    assert ei.value.recoverable
    assert not cargo.builds[0]["scratch"].exists()


def test_missing_output_file_is_io_error(crate_dir, cargo_env):
    cargo = FakeCargo([], [("no_output",)])
    with pytest.raises(IoError) as ei:
        _run(cargo, cargo_env, crate_dir)
    assert not ei.value.recoverable
    assert "could not compile" in (ei.value.detail or "")
    assert "101" in ei.value.message


def test_spawn_failure_is_invocation_error(crate_dir, cargo_env):
    cargo = FakeCargo([], [("spawn_error",)])
    with pytest.raises(InvocationError) as ei:
        _run(cargo, cargo_env, crate_dir)
    assert ei.value.code == "E_INVOCATION"
    assert not cargo.builds[0]["scratch"].exists()


def test_signature_detection():
    assert is_missing_workspace(MISSING_WORKSPACE_STDERR)
    assert is_missing_workspace(MISSING_WORKSPACE_STDERR + "\n\n  \n")
    # must start with the manifest prefix
    assert not is_missing_workspace("warning: x\n" + MISSING_WORKSPACE_STDERR)
    # must end with the workspace suffix
    assert not is_missing_workspace(MISSING_WORKSPACE_STDERR + "note: something else\n")
    assert not is_missing_workspace("")


def test_non_utf8_output_is_io_error(crate_dir, cargo_env):
    cargo = FakeCargo([], [("bad_utf8",)])
    with pytest.raises(IoError) as ei:
        _run(cargo, cargo_env, crate_dir)
    assert ei.value.code == "E_IO"
    assert ei.value.package == "serde"
    assert isinstance(ei.value.__cause__, UnicodeDecodeError)
    assert not cargo.builds[0]["scratch"].exists()
