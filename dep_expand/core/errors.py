from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass(eq=False)
class ExpandError(Exception):
    """Base error envelope for every failure surfaced by the expander."""

    code: str
    message: str
    package: Optional[str] = None
    detail: Optional[str] = None

    # Only errors with a known recovery path set this.
    recoverable: ClassVar[bool] = False

    def __str__(self) -> str:
        loc = self.package or "<expand>"
        return f"{loc}: {self.code}: {self.message}"


class PackageNotFound(ExpandError):
    pass


class MetadataQueryFailed(ExpandError):
    pass


class MissingWorkspace(ExpandError):
    """cargo refused the manifest because it is not part of a workspace."""

    recoverable: ClassVar[bool] = True


class InvocationError(ExpandError):
    pass


class EmptyOutput(ExpandError):
    pass


class IoError(ExpandError):
    pass


class ParseError(ExpandError):
    pass
