from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from dep_expand.core.build import run_build
from dep_expand.core.env import CargoEnv
from dep_expand.core.errors import ExpandError, ParseError
from dep_expand.core.filter import filter_source
from dep_expand.core.metadata import find_package
from dep_expand.core.model import Package
from dep_expand.core.options import ExpandOptions
from dep_expand.core.process import CommandRunner, TreeCopier, copy_tree, run_command
from dep_expand.core.recovery import recover_missing_workspace
from dep_expand.core.selector import PathSelector, Selector

logger = logging.getLogger(__name__)


@dataclass
class Expander:
    """Expands the lib target of a Cargo dependency.

    `env`, `run` and `copy` are the only ways the expander touches the
    outside world; tests replace them with fakes.
    """

    options: ExpandOptions = field(default_factory=ExpandOptions)
    env: CargoEnv = field(default_factory=CargoEnv.from_environ)
    run: CommandRunner = run_command
    copy: TreeCopier = copy_tree

    def manifest_path(self) -> Path:
        if self.options.manifest_path:
            return Path(self.options.manifest_path)
        return self.env.default_manifest()

    def find_package(self, name: str) -> Package:
        return find_package(name, self.manifest_path(), env=self.env, run=self.run)

    def expand(self, name: str) -> str:
        """Return the expanded lib of dependency `name`."""
        pkg = self.find_package(name)
        logger.debug("Expanding %s %s from %s", pkg.name, pkg.version, pkg.manifest_path)

        try:
            return run_build(self.options, pkg.manifest_path, package=pkg.name, env=self.env, run=self.run)
        except ExpandError as e:
            if not e.recoverable:
                raise
            origin = "registry package" if pkg.is_registry else "package"
            logger.info("%s %s is not part of a workspace; expanding an isolated copy", origin, pkg.name)

        return recover_missing_workspace(self.options, pkg, env=self.env, run=self.run, copy=self.copy)

    def expand_path(self, name: str, selector: Selector | str) -> str:
        """Return only the items of the expanded lib that `selector` picks."""
        if isinstance(selector, str):
            selector = PathSelector.parse(selector)
        content = self.expand(name)
        try:
            return filter_source(content, selector)
        except ParseError as e:
            raise replace(e, package=name) from e


def expand(name: str, options: ExpandOptions | None = None) -> str:
    return Expander(options=options or ExpandOptions()).expand(name)


def expand_path(name: str, selector: Selector | str, options: ExpandOptions | None = None) -> str:
    return Expander(options=options or ExpandOptions()).expand_path(name, selector)
