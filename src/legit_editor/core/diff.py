"""Semantic character diff between two snapshots."""

import difflib
from typing import Dict, List, Tuple, Union

from legit_editor.models.diff import DiffSegment, SegmentKind

# An edit run is (deleted, inserted); an equality is a plain string.
_Chunk = Union[str, Tuple[str, str]]


def diff_texts(old_text: str, new_text: str) -> List[DiffSegment]:
    """Diff ``old_text`` against ``new_text`` and clean the result up.

    Character level opcodes from ``difflib.SequenceMatcher`` are folded into
    alternating equal runs and edit runs. Short equalities squeezed between
    two edits are then absorbed into the edits so that, for example,
    ``"cat" -> "dog"`` reads as one replacement rather than three.
    """
    if old_text == new_text:
        return [DiffSegment(kind=SegmentKind.EQUAL, text=old_text)] if old_text else []

    matcher = difflib.SequenceMatcher(None, old_text, new_text, autojunk=False)
    chunks: List[_Chunk] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            _push(chunks, old_text[i1:i2])
        else:
            _push(chunks, (old_text[i1:i2], new_text[j1:j2]))

    return _to_segments(cleanup_semantic(chunks))


def cleanup_semantic(chunks: List[_Chunk]) -> List[_Chunk]:
    """Absorb equalities no longer than the edits on both of their sides.

    Repeats until nothing changes; each pass can only shrink the list, so this
    terminates.
    """
    changed = True
    while changed:
        changed = False
        for i in range(1, len(chunks) - 1):
            equality = chunks[i]
            before, after = chunks[i - 1], chunks[i + 1]
            if not isinstance(equality, str):
                continue
            if isinstance(before, str) or isinstance(after, str):
                continue

            size = len(equality)
            if size <= max(map(len, before)) and size <= max(map(len, after)):
                merged = (
                    before[0] + equality + after[0],
                    before[1] + equality + after[1],
                )
                chunks[i - 1 : i + 2] = [merged]
                changed = True
                break
    return chunks


def diff_stats(segments: List[DiffSegment]) -> Dict[str, int]:
    """Count inserted and deleted characters."""
    stats = {"inserted": 0, "deleted": 0, "unchanged": 0}
    for segment in segments:
        if segment.kind == SegmentKind.INSERT:
            stats["inserted"] += len(segment.text)
        elif segment.kind == SegmentKind.DELETE:
            stats["deleted"] += len(segment.text)
        else:
            stats["unchanged"] += len(segment.text)
    return stats


def _push(chunks: List[_Chunk], chunk: _Chunk) -> None:
    """Append ``chunk``, merging it into the previous chunk of the same kind."""
    if not chunks:
        chunks.append(chunk)
        return

    last = chunks[-1]
    if isinstance(chunk, str) and isinstance(last, str):
        chunks[-1] = last + chunk
    elif not isinstance(chunk, str) and not isinstance(last, str):
        chunks[-1] = (last[0] + chunk[0], last[1] + chunk[1])
    else:
        chunks.append(chunk)


def _to_segments(chunks: List[_Chunk]) -> List[DiffSegment]:
    segments = []
    for chunk in chunks:
        if isinstance(chunk, str):
            if chunk:
                segments.append(DiffSegment(kind=SegmentKind.EQUAL, text=chunk))
            continue
        deleted, inserted = chunk
        if deleted:
            segments.append(DiffSegment(kind=SegmentKind.DELETE, text=deleted))
        if inserted:
            segments.append(DiffSegment(kind=SegmentKind.INSERT, text=inserted))
    return segments
