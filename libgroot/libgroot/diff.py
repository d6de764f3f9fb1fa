"""Line-level differences between two texts."""

from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum


class DiffKind(Enum):
    UNCHANGED = 'unchanged'
    ADDED = 'added'
    REMOVED = 'removed'


@dataclass(frozen=True)
class DiffLine:
    """A single line of an edit script, with its line ending kept."""

    kind: DiffKind
    text: str


def diff_lines(old_text: str, new_text: str) -> list[DiffLine]:
    """Compute a line edit script turning `old_text` into `new_text`.

    Lines are aligned with difflib's matcher, without its popular-line junk
    heuristic. Within each changed region the removed lines come before the
    added lines, so the same inputs always give the same script.

    :param old_text: The previous version of the text.
    :param new_text: The current version of the text.
    :return: The edit script. Joining its unchanged and added lines gives `new_text`."""
    old_lines = old_text.splitlines(keepends=True)
    new_lines = new_text.splitlines(keepends=True)

    script: list[DiffLine] = []
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == 'equal':
            script.extend(DiffLine(DiffKind.UNCHANGED, line) for line in old_lines[i1:i2])
            continue

        # 'replace' is a removal followed by an insertion
        if tag in ('delete', 'replace'):
            script.extend(DiffLine(DiffKind.REMOVED, line) for line in old_lines[i1:i2])
        if tag in ('insert', 'replace'):
            script.extend(DiffLine(DiffKind.ADDED, line) for line in new_lines[j1:j2])

    return script
