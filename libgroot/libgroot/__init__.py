"""libgroot: a minimal content-addressed version-control engine."""

from dataclasses import dataclass

from .ref import HashRef


@dataclass(frozen=True)
class Blob:
    """Raw file content stored under its content identifier."""

    hash: HashRef
    content: bytes


@dataclass(frozen=True)
class StagingEntry:
    """A file path paired with the identifier of its content at staging time."""

    path: str
    hash: HashRef


@dataclass(frozen=True)
class Commit:
    """An immutable snapshot of the staging index with a link to its parent commit."""

    timestamp: str
    message: str
    files: tuple[StagingEntry, ...]
    parent: HashRef | None


__all__ = ['Blob', 'Commit', 'HashRef', 'StagingEntry']
