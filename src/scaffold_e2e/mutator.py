"""Anchored text edits on generated files.

The scaffolding tool owns the layout of the files it generates, so edits
are pinned to anchor text that must occur exactly once. A missing or
repeated anchor means the generator output changed and the edit fails
loudly instead of landing in the wrong place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import AnchorError
from .shared.logging import get_logger

logger = get_logger(__name__)


def _read(path: Path, anchor: str) -> str:
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise AnchorError(f"cannot read {path}: {e}", str(path), anchor, 0) from e


def _write(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def insert_after(path: Path | str, anchor: str, payload: str) -> None:
    """Insert payload immediately after the only occurrence of anchor.

    Args:
        path: File to edit.
        anchor: Text that must occur exactly once in the file.
        payload: Text inserted right after the anchor.

    Raises:
        AnchorError: If the anchor is missing or occurs more than once.
            The file is left untouched.
    """
    path = Path(path)
    content = _read(path, anchor)

    occurrences = content.count(anchor) if anchor else 0
    if occurrences != 1:
        raise AnchorError.for_anchor(path, anchor, occurrences)

    index = content.index(anchor) + len(anchor)
    _write(path, content[:index] + payload + content[index:])
    logger.debug("code_inserted", path=str(path), anchor=anchor, size=len(payload))


def uncomment(path: Path | str, anchor: str, comment_prefix: str) -> None:
    """Strip comment_prefix from the only line starting with anchor.

    Leading whitespace is ignored when matching, so indented comments are
    found. Only lines that still carry comment_prefix match, so an already
    uncommented line counts as a missing anchor. Indentation and the line
    ending are preserved.

    Args:
        path: File to edit.
        anchor: Commented text the target line starts with, e.g. "#- ../webhook".
        comment_prefix: Prefix removed from the matched line, e.g. "#".

    Raises:
        AnchorError: If no line, or more than one line, matches. The file is
            left untouched.
    """
    path = Path(path)
    lines = _read(path, anchor).splitlines(keepends=True)

    matches = [
        i
        for i, line in enumerate(lines)
        if anchor
        and comment_prefix
        and line.lstrip().startswith(anchor)
        and line.lstrip().startswith(comment_prefix)
    ]
    if len(matches) != 1:
        raise AnchorError.for_anchor(path, anchor, len(matches))

    i = matches[0]
    line = lines[i]
    indent = line[: len(line) - len(line.lstrip())]
    lines[i] = indent + line[len(indent) + len(comment_prefix) :]

    _write(path, "".join(lines))
    logger.debug("code_uncommented", path=str(path), anchor=anchor)


@dataclass(frozen=True)
class AnchorEdit:
    """A single anchored edit against a file in a workspace.

    Exactly one of payload (insert after) or comment_prefix (uncomment)
    is set. path may contain {placeholder} fields filled from the context.
    """

    path: str
    anchor: str
    payload: str | None = None
    comment_prefix: str | None = None

    def __post_init__(self) -> None:
        if (self.payload is None) == (self.comment_prefix is None):
            raise ValueError("AnchorEdit needs exactly one of payload or comment_prefix")

    @classmethod
    def insert(cls, path: str, anchor: str, payload: str) -> AnchorEdit:
        return cls(path, anchor, payload=payload)

    @classmethod
    def uncomment(cls, path: str, anchor: str, comment_prefix: str = "#") -> AnchorEdit:
        return cls(path, anchor, comment_prefix=comment_prefix)

    def target(self, base_dir: Path, values: Mapping[str, str] | None = None) -> Path:
        return Path(base_dir) / self.path.format_map(dict(values or {}))

    def apply(self, base_dir: Path, values: Mapping[str, str] | None = None) -> None:
        """Apply the edit to the file under base_dir."""
        target = self.target(base_dir, values)
        if self.payload is not None:
            insert_after(target, self.anchor, self.payload)
        else:
            uncomment(target, self.anchor, self.comment_prefix)
