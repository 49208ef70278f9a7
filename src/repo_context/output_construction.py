from __future__ import annotations

import io
from typing import TYPE_CHECKING

from repo_context.config import CheckState
from repo_context.exceptions import ContentFetchError
from repo_context.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_context.config import ExtensionStats, TreeNode
    from repo_context.sources import ContentSource

_XML_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
})

_CHECK_MARKERS = {
    CheckState.CHECKED: "[x]",
    CheckState.PARTIAL: "[-]",
    CheckState.UNCHECKED: "[ ]",
}


def xml_escape(text: str) -> str:
    """Escape the five XML reserved characters (`& < > " '`)."""
    return text.translate(_XML_ESCAPES)


def format_bytes(size: int) -> str:
    """Format a byte count for humans, e.g. `1536` -> `1.5 KB`.

    Args:
        size (int): number of bytes

    Returns:
        str: the size with one decimal at most and a B/KB/MB/GB unit
    """
    if size <= 0:
        return "0 B"
    units = ("B", "KB", "MB", "GB")
    value = float(size)
    idx = 0
    while round(value, 1) >= 1024 and idx < len(units) - 1:  # noqa: PLR2004
        value /= 1024
        idx += 1
    return f"{round(value, 1):g} {units[idx]}"


async def fetch_file_content(source: ContentSource, path: str) -> str:
    """Fetch a file's text, degrading to an empty string on failure."""
    try:
        return await source.get_file_content(path)
    except ContentFetchError as e:
        logger.warning("Failed to fetch file content", path=path, reason=e.reason)
        return ""


async def build_context_document(files: Sequence[TreeNode], source: ContentSource) -> str:
    """Serialize the selected files into a single XML-like context document.

    The document starts with a `<file_tree>` listing of every path, followed
    by one `<file path="...">` element per file with its escaped content, both
    in the order of `files`. Contents are fetched again on every call.

    Args:
        files (Sequence[TreeNode]): selected files, in tree order
        source (ContentSource): collaborator used to read file contents

    Returns:
        str: the context document, or "" when no file is selected
    """
    if not files:
        return ""

    out = io.StringIO()
    out.write("<repository>\n")
    out.write("  <file_tree>\n")
    for f in files:
        out.write(f"    {xml_escape(f.path)}\n")
    out.write("  </file_tree>\n\n")

    for f in files:
        content = await fetch_file_content(source, f.path)
        out.write(f'  <file path="{xml_escape(f.path)}">\n')
        out.write(f"{xml_escape(content)}\n")
        out.write("  </file>\n")

    out.write("</repository>")
    return out.getvalue()


def render_tree_lines(root_name: str, nodes: Sequence[TreeNode]) -> list[str]:
    """Build a visual tree of the currently visible nodes.

    Each line carries the selection marker (`[x]`, `[-]` or `[ ]`) and the
    size of the entry; ignored entries are tagged. Collapsed directories are
    shown without their children.

    Args:
        root_name (str): the name to use for the root of the tree
        nodes (Sequence[TreeNode]): root-level nodes

    Returns:
        list[str]: a list of strings representing the tree structure, suitable for printing
    """
    lines: list[str] = [root_name]

    def label(node: TreeNode) -> str:
        text = f"{_CHECK_MARKERS[node.is_checked]} {node.name}"
        if node.is_dir:
            text += "/"
            if node.aggregate_size is not None:
                text += f" ({format_bytes(node.aggregate_size)})"
            if not node.is_expanded:
                text += " …"
        elif node.size:
            text += f" {format_bytes(node.size)}"
        if node.is_ignored:
            text += " (ignored)"
        return text

    def walk(level: Sequence[TreeNode], prefix: str) -> None:
        for idx, node in enumerate(level):
            last = idx == len(level) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + label(node))
            if node.is_dir and node.is_expanded and node.children:
                ext = "    " if last else "│   "
                walk(node.children, prefix + ext)

    walk(nodes, "")
    return lines


def build_stats_lines(stats: Sequence[ExtensionStats]) -> list[str]:
    """One line per extension: key, byte total, file count and selection state."""
    return [
        f"{s.extension:<16} {format_bytes(s.total_bytes):>10} {s.file_count:>5} files  {s.selection_state}"
        for s in stats
    ]
