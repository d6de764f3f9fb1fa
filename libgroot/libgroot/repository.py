"""libgroot repository management."""

import logging
from collections.abc import Callable, Generator, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from functools import wraps
from pathlib import Path
from typing import Concatenate, ParamSpec, TypeVar

from . import Commit, StagingEntry
from .constants import DEFAULT_REPO_DIR, ENCODING, HEAD_FILE, INDEX_FILE, OBJECTS_SUBDIR
from .diff import DiffLine, diff_lines
from .index import clear_index, read_index, stage
from .plumbing import (CorruptObjectError, ObjectError, ObjectNotFoundError, load_blob, load_commit, save_commit,
                       save_file_content)
from .ref import HashRef, read_ref, write_ref

logger = logging.getLogger(__name__)

P = ParamSpec('P')
R = TypeVar('R')


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""


class FileStatus(Enum):
    """How a file in a commit relates to the parent commit."""

    FIRST_COMMIT = 'first commit'
    NEW_FILE = 'new file'
    MODIFIED = 'modified'


@dataclass
class LogEntry:
    """A class representing a log entry for the commit history."""

    commit_ref: HashRef
    commit: Commit


@dataclass
class FileChange:
    """A file recorded in a commit, with its diff against the parent commit."""

    path: str
    hash: HashRef
    content: str
    status: FileStatus
    lines: list[DiffLine] = field(default_factory=list)
    binary: bool = False


@dataclass
class CommitDiff:
    """The changes a commit introduces relative to its parent."""

    commit_ref: HashRef
    commit: Commit
    changes: list[FileChange]


class Repository:
    """Represents a groot repository.

    Constructing a Repository initializes the on-disk layout if it is missing,
    so every operation can assume the repository exists."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None) -> None:
        """Open the repository in a working directory, creating it if needed.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.groot'."""
        self.working_dir = Path(working_dir)

        if repo_dir is None:
            self.repo_dir = Path(DEFAULT_REPO_DIR)
        else:
            self.repo_dir = Path(repo_dir)

        self.created = self.init()

    def init(self) -> bool:
        """Create the repository layout if it does not exist yet.

        Calling this on an existing repository leaves it untouched.

        :return: True if the repository was created, False if it was already initialized."""
        self.objects_dir().mkdir(parents=True, exist_ok=True)

        created = False
        for path, content in ((self.head_file(), ''), (self.index_file(), '[]')):
            try:
                with path.open('x', encoding=ENCODING) as handle:
                    handle.write(content)
                created = True
            except FileExistsError:
                pass

        if created:
            logger.info('Initialized repository at %s', self.repo_path())
        else:
            logger.debug('Repository already initialized at %s', self.repo_path())

        return created

    def exists(self) -> bool:
        """Check if the repository exists in the working directory.

        :return: True if the repository exists, False otherwise."""
        return self.repo_path().exists()

    def repo_path(self) -> Path:
        """Get the path to the repository directory.

        :return: The path to the repository directory."""
        return self.working_dir / self.repo_dir

    def objects_dir(self) -> Path:
        """Get the path to the objects directory within the repository.

        :return: The path to the objects directory."""
        return self.repo_path() / OBJECTS_SUBDIR

    def head_file(self) -> Path:
        """Get the path to the HEAD file within the repository.

        :return: The path to the HEAD file."""
        return self.repo_path() / HEAD_FILE

    def index_file(self) -> Path:
        """Get the path to the staging index within the repository."""
        return self.repo_path() / INDEX_FILE

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = f'Repository not initialized at {self.repo_path()}'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    @requires_repo
    def head(self) -> HashRef | None:
        """Get the identifier of the most recent commit.

        :return: The HEAD commit reference, or None if there are no commits yet.
        :raises RefError: If the HEAD file is malformed.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return read_ref(self.head_file())

    @requires_repo
    def add(self, file: Path | str) -> StagingEntry:
        """Store the content of a file and stage it for the next commit.

        :param file: The file to add. Relative paths are resolved against the working directory.
        :return: The staging entry that was recorded.
        :raises OSError: If the file does not exist or cannot be read.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        file = Path(file)
        full_path = file if file.is_absolute() else self.working_dir / file

        blob = save_file_content(self.objects_dir(), full_path)
        entry = StagingEntry(self._staged_path(file), blob.hash)
        stage(self.index_file(), entry)

        return entry

    def _staged_path(self, file: Path) -> str:
        if not file.is_absolute():
            return file.as_posix()

        try:
            return file.resolve().relative_to(self.working_dir.resolve()).as_posix()
        except ValueError:
            return file.as_posix()

    @requires_repo
    def staged(self) -> list[StagingEntry]:
        """Get the entries staged for the next commit, in the order they were added.

        :raises CorruptObjectError: If the index cannot be decoded.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return read_index(self.index_file())

    @requires_repo
    def commit(self, message: str) -> HashRef:
        """Commit the staged entries and advance HEAD.

        Committing with nothing staged is allowed and records an empty file list.

        :param message: The commit message.
        :return: A HashRef object representing the new commit.
        :raises ValueError: If the message is empty.
        :raises RepositoryError: If the HEAD commit cannot be loaded.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not message:
            msg = 'Commit message is required'
            raise ValueError(msg)

        files = tuple(read_index(self.index_file()))
        parent = self.head()

        commit = Commit(self._next_timestamp(parent), message, files, parent)
        commit_ref = save_commit(self.objects_dir(), commit)

        # HEAD moves before the index is cleared: a crash in between leaves
        # the entries staged instead of losing the commit.
        write_ref(self.head_file(), commit_ref)
        clear_index(self.index_file())

        logger.info('Created commit %s with %d file(s)', commit_ref, len(files))
        return commit_ref

    def _next_timestamp(self, parent: HashRef | None) -> str:
        """Get the current UTC time, moved past the parent's timestamp if the clock has not advanced."""
        now = datetime.now(UTC)
        if parent is None:
            return now.isoformat(timespec='microseconds')

        try:
            parent_time = datetime.fromisoformat(self.get_commit(parent).timestamp)
        except (ObjectError, ValueError) as e:
            msg = f'Error loading HEAD commit {parent}'
            raise RepositoryError(msg) from e

        if parent_time.tzinfo is None:
            parent_time = parent_time.replace(tzinfo=UTC)

        return max(now, parent_time + timedelta(microseconds=1)).isoformat(timespec='microseconds')

    @requires_repo
    def get_commit(self, commit_ref: str) -> Commit:
        """Load a commit from the object store.

        :param commit_ref: The identifier of the commit.
        :return: The commit.
        :raises ObjectNotFoundError: If no object exists for the identifier.
        :raises CorruptObjectError: If the object is not a commit.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return load_commit(self.objects_dir(), commit_ref)

    @requires_repo
    def log(self, tip: HashRef | None = None) -> Iterator[LogEntry]:
        """Generate a log of commits in the repository, starting from the specified tip.

        HEAD is read once, when this method is called. Commits made while the
        log is being consumed do not change what it yields.

        :param tip: The commit to start from. If None, defaults to the current HEAD.
        :return: An iterator yielding LogEntry objects from the tip back to the root commit.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return self._walk(tip or self.head())

    def _walk(self, current_hash: HashRef | None) -> Generator[LogEntry, None, None]:
        try:
            while current_hash:
                commit = load_commit(self.objects_dir(), current_hash)
                yield LogEntry(HashRef(current_hash), commit)

                current_hash = commit.parent
        except ObjectError as e:
            msg = f'Error loading commit {current_hash}'
            raise RepositoryError(msg) from e

    @requires_repo
    def show_commit(self, commit_ref: str) -> CommitDiff | None:
        """Describe the changes a commit made to each of its files.

        Each file is compared with the entry for the same path in the parent
        commit.

        :param commit_ref: The identifier of the commit.
        :return: The per-file changes, or None if no commit exists under the identifier.
        :raises RepositoryError: If the parent commit or a file's content cannot be loaded.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        try:
            commit = self.get_commit(commit_ref)
        except ObjectNotFoundError:
            logger.debug('Commit %s not found', commit_ref)
            return None
        except CorruptObjectError:
            logger.debug('Object %s is not a commit', commit_ref)
            return None

        try:
            parent = self.get_commit(commit.parent) if commit.parent else None
            changes = [self._file_change(entry, parent) for entry in commit.files]
        except ObjectError as e:
            msg = f'Error loading objects for commit {commit_ref}'
            raise RepositoryError(msg) from e

        return CommitDiff(HashRef(commit_ref), commit, changes)

    def _file_change(self, entry: StagingEntry, parent: Commit | None) -> FileChange:
        content = self._read_text(entry.hash)

        if parent is None:
            status = FileStatus.FIRST_COMMIT
            parent_entry = None
        else:
            parent_entry = find_entry(parent.files, entry.path)
            status = FileStatus.NEW_FILE if parent_entry is None else FileStatus.MODIFIED

        parent_content = self._read_text(parent_entry.hash) if parent_entry else ''

        if content is None or parent_content is None:
            return FileChange(entry.path, entry.hash, '', status, binary=True)
        if status != FileStatus.MODIFIED:
            return FileChange(entry.path, entry.hash, content, status)

        return FileChange(entry.path, entry.hash, content, status, diff_lines(parent_content, content))

    def _read_text(self, blob_hash: HashRef) -> str | None:
        """Load a blob as text.

        :return: The decoded content, or None if the blob is not valid UTF-8."""
        try:
            return load_blob(self.objects_dir(), blob_hash).content.decode(ENCODING)
        except UnicodeDecodeError:
            logger.debug('Blob %s is not UTF-8 text', blob_hash)
            return None


def find_entry(files: Sequence[StagingEntry], path: str) -> StagingEntry | None:
    """Find the entry recorded for a path.

    When a path was staged more than once, the last entry wins.

    :param files: The entries to search.
    :param path: The path to look for.
    :return: The matching entry, or None if the path is not in the list."""
    for entry in reversed(files):
        if entry.path == path:
            return entry
    return None
