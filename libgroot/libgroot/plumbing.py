"""Low-level object storage: content hashing, blobs and the commit codec."""

import hashlib
import json
import logging
from pathlib import Path

from . import Blob, Commit, StagingEntry
from .constants import ENCODING
from .fileio import write_atomic
from .ref import HashRef, is_hash

logger = logging.getLogger(__name__)

COMMIT_FIELDS = frozenset({'timestamp', 'message', 'files', 'parent'})


class ObjectError(Exception):
    """Exception raised for object store errors."""


class ObjectNotFoundError(ObjectError):
    """Exception raised when no object exists for an identifier."""


class CorruptObjectError(ObjectError):
    """Exception raised when stored data does not decode as expected."""


def hash_content(content: bytes | str) -> HashRef:
    """Compute the content identifier of some data.

    :param content: The data to hash. Strings are UTF-8 encoded first.
    :return: The hex SHA-1 digest of the data."""
    if isinstance(content, str):
        content = content.encode(ENCODING)
    return HashRef(hashlib.sha1(content).hexdigest())


def get_content_path(objects_dir: str | Path, content_hash: str) -> Path:
    """Get the path an object is stored at.

    :param objects_dir: The objects directory of the repository.
    :param content_hash: The identifier of the object.
    :return: The path of the object file.
    :raises ObjectNotFoundError: If the identifier is malformed and cannot name an object."""
    if not is_hash(content_hash):
        msg = f'Invalid object identifier: {content_hash!r}'
        raise ObjectNotFoundError(msg)

    return Path(objects_dir) / content_hash


def object_exists(objects_dir: str | Path, content_hash: str) -> bool:
    """Check if an object is stored under the given identifier."""
    return is_hash(content_hash) and (Path(objects_dir) / content_hash).is_file()


def save_content(objects_dir: str | Path, content: bytes | str) -> HashRef:
    """Store data in the object store.

    Storing the same data twice is a no-op after the first write.

    :param objects_dir: The objects directory of the repository.
    :param content: The data to store. Strings are UTF-8 encoded first.
    :return: The identifier the data is stored under."""
    if isinstance(content, str):
        content = content.encode(ENCODING)

    content_hash = hash_content(content)
    if object_exists(objects_dir, content_hash):
        logger.debug('Object %s already stored', content_hash)
    else:
        write_atomic(get_content_path(objects_dir, content_hash), content)
        logger.debug('Stored object %s (%d bytes)', content_hash, len(content))

    return content_hash


def load_content(objects_dir: str | Path, content_hash: str) -> bytes:
    """Load data from the object store.

    :param objects_dir: The objects directory of the repository.
    :param content_hash: The identifier of the object.
    :return: The stored bytes.
    :raises ObjectNotFoundError: If no object exists for the identifier."""
    content_path = get_content_path(objects_dir, content_hash)
    try:
        return content_path.read_bytes()
    except FileNotFoundError as e:
        msg = f'Object {content_hash} not found'
        raise ObjectNotFoundError(msg) from e


def save_file_content(objects_dir: str | Path, file: Path) -> Blob:
    """Store the content of a file.

    :param objects_dir: The objects directory of the repository.
    :param file: The file to read.
    :return: A Blob for the stored content.
    :raises OSError: If the file cannot be read."""
    content = Path(file).read_bytes()
    return Blob(save_content(objects_dir, content), content)


def load_blob(objects_dir: str | Path, blob_hash: str) -> Blob:
    return Blob(HashRef(blob_hash), load_content(objects_dir, blob_hash))


def entry_to_dict(entry: StagingEntry) -> dict[str, str]:
    return {'path': entry.path, 'hash': entry.hash}


def entry_from_dict(data: object) -> StagingEntry:
    """Decode a staging entry.

    :raises CorruptObjectError: If the data is not a path/hash mapping."""
    if not isinstance(data, dict) or set(data) != {'path', 'hash'}:
        msg = f'Invalid staging entry: {data!r}'
        raise CorruptObjectError(msg)

    path, entry_hash = data['path'], data['hash']
    if not isinstance(path, str) or not is_hash(entry_hash):
        msg = f'Invalid staging entry: {data!r}'
        raise CorruptObjectError(msg)

    return StagingEntry(path, HashRef(entry_hash))


def serialize_commit(commit: Commit) -> bytes:
    """Encode a commit deterministically as compact, key-sorted JSON."""
    data = {
        'timestamp': commit.timestamp,
        'message': commit.message,
        'files': [entry_to_dict(entry) for entry in commit.files],
        'parent': commit.parent,
    }
    return json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False).encode(ENCODING)


def deserialize_commit(content: bytes) -> Commit:
    """Decode a commit.

    Blobs and commits share one namespace, so any stored object may be handed
    to this function; anything that is not a commit record is rejected.

    :param content: The stored bytes.
    :return: The decoded commit.
    :raises CorruptObjectError: If the content is not a commit record."""
    try:
        data = json.loads(content.decode(ENCODING))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = 'Object is not a commit'
        raise CorruptObjectError(msg) from e

    if not isinstance(data, dict) or set(data) != COMMIT_FIELDS:
        msg = 'Object is not a commit'
        raise CorruptObjectError(msg)

    timestamp, message, files, parent = data['timestamp'], data['message'], data['files'], data['parent']
    if not isinstance(timestamp, str) or not isinstance(message, str) or not isinstance(files, list):
        msg = 'Malformed commit record'
        raise CorruptObjectError(msg)
    if parent is not None and not is_hash(parent):
        msg = f'Malformed commit parent: {parent!r}'
        raise CorruptObjectError(msg)

    return Commit(timestamp, message, tuple(entry_from_dict(entry) for entry in files),
                  HashRef(parent) if parent else None)


def save_commit(objects_dir: str | Path, commit: Commit) -> HashRef:
    """Store a commit and return its identifier."""
    return save_content(objects_dir, serialize_commit(commit))


def load_commit(objects_dir: str | Path, commit_hash: str) -> Commit:
    """Load a commit.

    :param objects_dir: The objects directory of the repository.
    :param commit_hash: The identifier of the commit.
    :return: The decoded commit.
    :raises ObjectNotFoundError: If no object exists for the identifier.
    :raises CorruptObjectError: If the object is not a commit."""
    return deserialize_commit(load_content(objects_dir, commit_hash))
