"""The staging index: files queued for the next commit."""

import json
import logging
from pathlib import Path

from . import StagingEntry
from .constants import ENCODING
from .fileio import write_atomic
from .plumbing import CorruptObjectError, entry_from_dict, entry_to_dict

logger = logging.getLogger(__name__)


def read_index(index_file: Path) -> list[StagingEntry]:
    """Read the staged entries in insertion order.

    :param index_file: The index file of the repository.
    :return: The staged entries. A missing index is treated as empty.
    :raises CorruptObjectError: If the index cannot be decoded."""
    try:
        raw = index_file.read_text(encoding=ENCODING)
    except FileNotFoundError:
        return []

    try:
        data = json.loads(raw) if raw.strip() else []
    except json.JSONDecodeError as e:
        msg = f'Corrupt index file {index_file}'
        raise CorruptObjectError(msg) from e

    if not isinstance(data, list):
        msg = f'Corrupt index file {index_file}: expected a list'
        raise CorruptObjectError(msg)

    return [entry_from_dict(entry) for entry in data]


def write_index(index_file: Path, entries: list[StagingEntry]) -> None:
    data = json.dumps([entry_to_dict(entry) for entry in entries], ensure_ascii=False)
    write_atomic(index_file, data.encode(ENCODING))


def stage(index_file: Path, entry: StagingEntry) -> None:
    """Append an entry to the index and persist it.

    Entries are not deduplicated by path."""
    entries = read_index(index_file)
    entries.append(entry)
    write_index(index_file, entries)
    logger.debug('Staged %s as %s', entry.path, entry.hash)


def clear_index(index_file: Path) -> None:
    write_index(index_file, [])
