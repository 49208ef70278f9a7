from __future__ import annotations

from typing import TYPE_CHECKING

from repo_context.config import NO_EXTENSION, TOP_EXTENSIONS, ExtensionStats, SelectionState

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from repo_context.config import TreeNode


def extension_key(name: str) -> str:
    """Normalize a file name to the key used to group files by extension.

    - `Makefile` -> "no extension"
    - `.gitignore` -> ".gitignore" (a dotfile with no other dot is its own key)
    - `App.Test.TSX` -> ".tsx"

    Args:
        name (str): the bare file name

    Returns:
        str: the extension key
    """
    if "." not in name:
        return NO_EXTENSION
    if name.startswith(".") and "." not in name[1:]:
        return name
    return "." + name.rsplit(".", 1)[-1].lower()


def iter_visible_files(nodes: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Yield files the user can currently see: roots plus children of expanded directories."""
    for node in nodes:
        if node.is_file:
            yield node
        elif node.is_expanded and node.children:
            yield from iter_visible_files(node.children)


def analyze_extensions(nodes: Sequence[TreeNode], limit: int = TOP_EXTENSIONS) -> list[ExtensionStats]:
    """Summarize the visible, non-ignored files per extension.

    Collapsed or unmaterialized subtrees are not looked at, and zero-byte
    files do not count.

    Args:
        nodes (Sequence[TreeNode]): root-level nodes of the tree
        limit (int): number of extensions to keep, largest byte totals first

    Returns:
        list[ExtensionStats]: at most `limit` entries, sorted by descending total bytes
    """
    totals: dict[str, list[int]] = {}
    for node in iter_visible_files(nodes):
        if node.is_ignored or not node.size:
            continue
        bucket = totals.setdefault(extension_key(node.name), [0, 0, 0])
        bucket[0] += node.size
        bucket[1] += 1
        bucket[2] += int(node.is_checked.is_selected)

    stats: list[ExtensionStats] = []
    for ext, (total_bytes, file_count, selected) in totals.items():
        if selected == 0:
            state = SelectionState.NONE
        elif selected == file_count:
            state = SelectionState.FULL
        else:
            state = SelectionState.PARTIAL
        stats.append(
            ExtensionStats(extension=ext, total_bytes=total_bytes, file_count=file_count, selection_state=state),
        )
    stats.sort(key=lambda s: s.total_bytes, reverse=True)
    return stats[:limit]


def find_extension(stats: Iterable[ExtensionStats], extension: str) -> ExtensionStats | None:
    return next((s for s in stats if s.extension == extension), None)
