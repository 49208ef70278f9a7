from __future__ import annotations

from typing import TYPE_CHECKING

from repo_context.config import AUTO_SELECT_SIZE_LIMIT, DEPTH_CAP, CheckState, ListingEntry, NodeKind, TreeNode
from repo_context.exceptions import ListingError
from repo_context.ignore import classify
from repo_context.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from repo_context.sources import ContentSource

    ProgressFn = Callable[[str], None]
    NodeRewriteFn = Callable[[TreeNode], TreeNode]


def sort_nodes(nodes: Iterable[TreeNode]) -> tuple[TreeNode, ...]:
    """Order sibling nodes: directories first, then by name (case-insensitive)."""
    return tuple(sorted(nodes, key=lambda n: (not n.is_dir, n.name.lower(), n.name)))


def resolve_checked(
    entry: ListingEntry,
    *,
    is_ignored: bool,
    inherited: bool | None,
    auto_select_size_limit: int = AUTO_SELECT_SIZE_LIMIT,
) -> CheckState:
    """Initial selection of a freshly listed entry.

    Precedence: ignored entries are never checked; an explicitly inherited
    value wins next; otherwise files are checked when small enough and
    directories are checked.

    Args:
        entry (ListingEntry): the listed entry
        is_ignored (bool): result of the ignore classifier for the entry
        inherited (bool | None): checked state inherited from the parent, if any
        auto_select_size_limit (int): files above this many bytes start unchecked

    Returns:
        CheckState: CHECKED or UNCHECKED
    """
    if is_ignored:
        return CheckState.UNCHECKED
    if inherited is not None:
        return CheckState.from_bool(inherited)
    if entry.kind is NodeKind.FILE:
        return CheckState.from_bool(entry.size <= auto_select_size_limit)
    return CheckState.CHECKED


async def materialize(
    source: ContentSource,
    path: str = "",
    depth: int = 0,
    inherited: bool | None = None,
    *,
    depth_cap: int = DEPTH_CAP,
    auto_select_size_limit: int = AUTO_SELECT_SIZE_LIMIT,
    on_progress: ProgressFn | None = None,
) -> tuple[TreeNode, ...]:
    """Build the nodes for the listing of `path`, recursing down to the depth cap.

    Directories shallower than `depth_cap` are listed immediately and receive
    their own resolved selection as the inherited value of their children.
    Deeper directories get an empty `children` tuple and are listed on demand.

    A failed listing is logged and yields no nodes for that directory; the
    rest of the tree is still built.

    Args:
        source (ContentSource): the collaborator used to list directories
        path (str): directory to list, "" for the repository root
        depth (int): depth assigned to the listed entries
        inherited (bool | None): checked state pushed down by the parent
        depth_cap (int): directories at or below this depth are not listed eagerly
        auto_select_size_limit (int): byte threshold for auto-selecting files
        on_progress (ProgressFn | None): receives a status line before each listing

    Returns:
        tuple[TreeNode, ...]: sorted, size-aggregated nodes
    """
    if on_progress is not None:
        on_progress(f"Loading {path or 'root'}...")
    try:
        entries = await source.list_directory(path)
    except ListingError as e:
        logger.warning("Failed to list directory", path=path, reason=e.reason)
        return ()

    nodes: list[TreeNode] = []
    for entry in entries:
        is_ignored = classify(entry.path, entry.name)
        is_dir = entry.kind is NodeKind.DIR
        nodes.append(
            TreeNode(
                name=entry.name,
                path=entry.path,
                kind=entry.kind,
                depth=depth,
                size=None if is_dir else entry.size,
                is_expanded=is_dir and depth < depth_cap,
                is_ignored=is_ignored,
                is_checked=resolve_checked(
                    entry,
                    is_ignored=is_ignored,
                    inherited=inherited,
                    auto_select_size_limit=auto_select_size_limit,
                ),
                children=() if is_dir else None,
            ),
        )

    out: list[TreeNode] = []
    for node in sort_nodes(nodes):
        if node.is_dir and depth < depth_cap:
            children = await materialize(
                source,
                node.path,
                depth + 1,
                node.is_checked is CheckState.CHECKED,
                depth_cap=depth_cap,
                auto_select_size_limit=auto_select_size_limit,
                on_progress=on_progress,
            )
            node = node.model_copy(update={"children": children})  # noqa: PLW2901
        out.append(node)

    logger.debug("Materialized directory", path=path, depth=depth, entries=len(out))
    return aggregate_sizes(out)


def aggregate_sizes(nodes: Sequence[TreeNode]) -> tuple[TreeNode, ...]:
    """Roll file sizes up onto directories, bottom-up.

    Every child counts, ignored and unchecked ones included. Directories
    without materialized children keep `aggregate_size` unset.

    Args:
        nodes (Sequence[TreeNode]): sibling nodes to aggregate

    Returns:
        tuple[TreeNode, ...]: the nodes with `aggregate_size` set on directories
    """
    out: list[TreeNode] = []
    for node in nodes:
        if node.is_dir and node.has_children:
            children = aggregate_sizes(node.children or ())
            node = node.model_copy(  # noqa: PLW2901
                update={"children": children, "aggregate_size": sum(c.byte_size for c in children)},
            )
        out.append(node)
    return tuple(out)


def iter_nodes(nodes: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Walk the materialized tree in pre-order."""
    for node in nodes:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def _may_contain(node: TreeNode, path: str) -> bool:
    return node.is_dir and path.startswith(node.path + "/")


def find_node(nodes: Iterable[TreeNode], path: str) -> TreeNode | None:
    """Locate a node by its path, or None when it is not materialized."""
    for node in nodes:
        if node.path == path:
            return node
        if node.children and _may_contain(node, path):
            found = find_node(node.children, path)
            if found is not None:
                return found
    return None


def replace_node(nodes: Sequence[TreeNode], path: str, fn: NodeRewriteFn) -> tuple[TreeNode, ...]:
    """Rebuild the tree with the node at `path` replaced by `fn(node)`.

    Branches that cannot contain `path` are reused as they are. When no node
    matches, an equal tree is returned.
    """
    out: list[TreeNode] = []
    for node in nodes:
        if node.path == path:
            out.append(fn(node))
        elif node.children and _may_contain(node, path):
            out.append(node.model_copy(update={"children": replace_node(node.children, path, fn)}))
        else:
            out.append(node)
    return tuple(out)
