"""Reading and writing the HEAD pointer."""

import logging
from pathlib import Path

from .constants import ENCODING, HASH_CHARSET, HASH_LENGTH
from .fileio import write_atomic

logger = logging.getLogger(__name__)


class RefError(Exception):
    """Exception raised for malformed references."""


class HashRef(str):
    """A content identifier: the hex digest naming a stored object."""


def is_hash(value: object) -> bool:
    """Check whether a value is a well-formed content identifier.

    :param value: The value to check.
    :return: True if the value is a lowercase hex string of HASH_LENGTH characters."""
    return isinstance(value, str) and len(value) == HASH_LENGTH and all(c in HASH_CHARSET for c in value)


def read_ref(ref_file: Path) -> HashRef | None:
    """Read a reference file.

    :param ref_file: The file holding the reference.
    :return: The stored HashRef, or None if the file is missing or empty.
    :raises RefError: If the file holds something other than a content identifier."""
    try:
        value = ref_file.read_text(encoding=ENCODING).strip()
    except FileNotFoundError:
        return None

    if not value:
        return None
    if not is_hash(value):
        msg = f'Invalid reference in {ref_file}: {value!r}'
        raise RefError(msg)

    return HashRef(value)


def write_ref(ref_file: Path, ref: HashRef | None) -> None:
    """Atomically replace the content of a reference file.

    :param ref_file: The file holding the reference.
    :param ref: The new value, or None to empty the reference.
    :raises RefError: If the value is not a content identifier."""
    if ref is not None and not is_hash(ref):
        msg = f'Invalid reference: {ref!r}'
        raise RefError(msg)

    write_atomic(ref_file, (ref or '').encode(ENCODING))
    logger.debug('%s -> %s', ref_file.name, ref or '(empty)')
