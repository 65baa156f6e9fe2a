from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class ExpandOptions:
    """How to run the expansion of a dependency.

    Every `add_*` / `with_*` method returns a new value; the receiver is never
    changed, so one options value can be shared between calls.
    """

    # features to activate, unique and in insertion order
    features: tuple[str, ...] = ()
    all_features: bool = False
    no_default_features: bool = False
    # include #[cfg(test)] code (test profile)
    tests: bool = False
    release: bool = False
    # nightly-only flags passed as `-Z <flag>`
    unstable_flags: tuple[str, ...] = ()
    # None means the enclosing project's Cargo.toml
    manifest_path: Optional[str] = None

    def add_feature(self, *names: str) -> "ExpandOptions":
        features = list(self.features)
        for name in names:
            if name not in features:
                features.append(name)
        return replace(self, features=tuple(features))

    def add_unstable_flag(self, *flags: str) -> "ExpandOptions":
        return replace(self, unstable_flags=self.unstable_flags + tuple(flags))

    def with_manifest(self, path: str | Path) -> "ExpandOptions":
        return replace(self, manifest_path=str(path))

    def with_tests(self) -> "ExpandOptions":
        return replace(self, tests=True)

    def with_all_features(self) -> "ExpandOptions":
        return replace(self, all_features=True)

    def with_no_default_features(self) -> "ExpandOptions":
        return replace(self, no_default_features=True)

    def with_release(self) -> "ExpandOptions":
        return replace(self, release=True)


class OptionsConfigError(ValueError):
    pass


_BOOL_KEYS = ("all_features", "no_default_features", "tests", "release")
_LIST_KEYS = ("features", "unstable_flags")


def _str_list(key: str, value: Any) -> list[str]:
    if isinstance(value, str):
        # `features: "a b"` mirrors cargo's space separated --features
        value = value.split()
    if not isinstance(value, list):
        raise OptionsConfigError(f"'{key}' must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise OptionsConfigError(f"'{key}' items must be non-empty strings")
        out.append(item.strip())
    return out


def options_from_dict(raw: dict[str, Any], base: ExpandOptions | None = None) -> ExpandOptions:
    opts = base or ExpandOptions()
    unknown = sorted(set(raw) - set(_BOOL_KEYS) - set(_LIST_KEYS) - {"manifest_path"})
    if unknown:
        raise OptionsConfigError(f"unknown option(s): {', '.join(unknown)}")

    for key in _BOOL_KEYS:
        if key not in raw:
            continue
        if not isinstance(raw[key], bool):
            raise OptionsConfigError(f"'{key}' must be true or false")
        if raw[key]:
            opts = replace(opts, **{key: True})

    if "features" in raw:
        opts = opts.add_feature(*_str_list("features", raw["features"]))
    if "unstable_flags" in raw:
        opts = opts.add_unstable_flag(*_str_list("unstable_flags", raw["unstable_flags"]))

    manifest = raw.get("manifest_path")
    if manifest is not None:
        if not isinstance(manifest, str) or not manifest.strip():
            raise OptionsConfigError("'manifest_path' must be a non-empty string")
        opts = opts.with_manifest(manifest.strip())
    return opts


def load_options_file(path: str | Path) -> ExpandOptions:
    """Load expansion options from a YAML file.

    Format:
      features: [serde, std]
      all_features: false
      no_default_features: false
      tests: false
      release: false
      unstable_flags: [build-std]
      manifest_path: path/to/Cargo.toml
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return ExpandOptions()
    if not isinstance(raw, dict):
        raise OptionsConfigError("options file must be a mapping of option -> value")
    return options_from_dict(raw)


def merge_cli_options(
    base: ExpandOptions,
    *,
    features: list[str] | None = None,
    all_features: bool = False,
    no_default_features: bool = False,
    tests: bool = False,
    release: bool = False,
    unstable_flags: list[str] | None = None,
    manifest_path: str | None = None,
) -> ExpandOptions:
    """Layer command line flags over options loaded from a file.

    Flags only ever switch options on or add to lists; an explicit
    manifest path replaces the file's.
    """
    opts = base
    for f in features or []:
        # `--features "a b"` and repeated `--features a` are both accepted
        opts = opts.add_feature(*f.replace(",", " ").split())
    if all_features:
        opts = opts.with_all_features()
    if no_default_features:
        opts = opts.with_no_default_features()
    if tests:
        opts = opts.with_tests()
    if release:
        opts = opts.with_release()
    if unstable_flags:
        opts = opts.add_unstable_flag(*unstable_flags)
    if manifest_path:
        opts = opts.with_manifest(manifest_path)
    return opts
