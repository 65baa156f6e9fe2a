import json
from pathlib import Path

import pytest

from dep_expand.core.build import MANIFEST_ERROR_PREFIX, VIRTUAL_MANIFEST_SUFFIX
from dep_expand.core.env import CargoEnv
from dep_expand.core.process import ProcessResult


MISSING_WORKSPACE_STDERR = (
    f"{MANIFEST_ERROR_PREFIX} `/home/u/.cargo/registry/src/serde-1.0.0/Cargo.toml`\n\n"
    f"Caused by:\n  {VIRTUAL_MANIFEST_SUFFIX}\n"
)


class FakeCargo:
    """Stands in for cargo: answers `metadata` and scripted `rustc` runs.

    Each rustc response is one of:
      ("ok", text), ("empty",), ("missing_workspace",), ("no_output",), ("spawn_error",),
      ("bad_utf8",)
    """

    def __init__(self, packages, responses=()):
        self.packages = packages
        self.responses = list(responses)
        self.calls: list[list[str]] = []
        self.builds: list[dict] = []

    def __call__(self, args, *, capture_stdout=False):
        self.calls.append(list(args))
        if args[1] == "metadata":
            return ProcessResult(returncode=0, stderr="", stdout=json.dumps({"packages": self.packages}))

        outfile = Path(args[args.index("-o") + 1])
        manifest = Path(args[args.index("--manifest-path") + 1])
        self.builds.append(
            {
                "args": list(args),
                "outfile": outfile,
                "manifest": manifest,
                "manifest_existed": manifest.is_file(),
                "scratch": outfile.parent,
            }
        )

        resp = self.responses[min(len(self.builds), len(self.responses)) - 1]
        kind = resp[0]
        if kind == "ok":
            outfile.write_text(resp[1], encoding="utf-8")
            return ProcessResult(returncode=0, stderr="   Compiling x v0.1.0\n")
        if kind == "empty":
            outfile.write_text("", encoding="utf-8")
            return ProcessResult(returncode=0, stderr="")
        if kind == "missing_workspace":
            # cargo exits with 101 here, but the signature alone decides
            return ProcessResult(returncode=101, stderr=MISSING_WORKSPACE_STDERR)
        if kind == "no_output":
            return ProcessResult(returncode=101, stderr="error: could not compile `x`\n")
        if kind == "bad_utf8":
            outfile.write_bytes(b"\xff")
            return ProcessResult(returncode=0, stderr="")
        if kind == "spawn_error":
            raise FileNotFoundError(2, "No such file or directory", args[0])
        raise AssertionError(f"unknown response {resp!r}")


def package_entry(name: str, manifest: Path, source: str | None = None, version: str = "1.0.0") -> dict:
    return {
        "name": name,
        "version": version,
        "id": f"{name} {version} ({source or 'path+file://' + str(manifest.parent)})",
        "manifest_path": str(manifest),
        "source": source,
    }


@pytest.fixture
def crate_dir(tmp_path: Path) -> Path:
    d = tmp_path / "registry" / "serde-1.0.0"
    (d / "src").mkdir(parents=True)
    (d / "Cargo.toml").write_text('[package]\nname = "serde"\nversion = "1.0.0"\n', encoding="utf-8")
    (d / "src" / "lib.rs").write_text("pub struct Serializer;\n", encoding="utf-8")
    return d


@pytest.fixture
def project_manifest(tmp_path: Path) -> Path:
    p = tmp_path / "project" / "Cargo.toml"
    p.parent.mkdir(parents=True)
    p.write_text('[package]\nname = "app"\nversion = "0.1.0"\n', encoding="utf-8")
    return p


@pytest.fixture
def cargo_env(project_manifest: Path) -> CargoEnv:
    return CargoEnv(cargo="cargo", manifest_dir=project_manifest.parent)
