from __future__ import annotations

from typing import TYPE_CHECKING

from repo_context.config import AUTO_SELECT_SIZE_LIMIT, DEPTH_CAP, CheckState
from repo_context.tree import materialize

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_context.config import TreeNode
    from repo_context.sources import ContentSource


class SubtreeLoader:
    """Provide the children of a selected directory, listing them when needed.

    Directories that are selected but not materialized (beyond the depth cap,
    never expanded) are listed on demand with their own checked state as the
    inherited selection. Results are memoized for the lifetime of the loader,
    which is one recompute pass, so counting bytes and collecting files share
    the same listings. Fetched subtrees are never written back into the tree.
    """

    def __init__(
        self,
        source: ContentSource,
        *,
        depth_cap: int = DEPTH_CAP,
        auto_select_size_limit: int = AUTO_SELECT_SIZE_LIMIT,
    ) -> None:
        self.source = source
        self.depth_cap = depth_cap
        self.auto_select_size_limit = auto_select_size_limit
        self._cache: dict[tuple[str, bool], tuple[TreeNode, ...]] = {}

    async def children_of(self, node: TreeNode) -> tuple[TreeNode, ...]:
        if node.has_children:
            return node.children or ()
        key = (node.path, node.is_checked is CheckState.CHECKED)
        if key not in self._cache:
            self._cache[key] = await materialize(
                self.source,
                node.path,
                node.depth + 1,
                key[1],
                depth_cap=self.depth_cap,
                auto_select_size_limit=self.auto_select_size_limit,
            )
        return self._cache[key]


async def count_selected_bytes(nodes: Sequence[TreeNode], loader: SubtreeLoader) -> int:
    """Sum the sizes of all selected files, descending into selected directories.

    Args:
        nodes (Sequence[TreeNode]): nodes to count
        loader (SubtreeLoader): supplies children of unmaterialized directories

    Returns:
        int: total bytes of checked files
    """
    total = 0
    for node in nodes:
        if not node.is_checked.is_selected:
            continue
        if node.is_file:
            total += node.size or 0
        else:
            total += await count_selected_bytes(await loader.children_of(node), loader)
    return total


async def collect_selected_files(nodes: Sequence[TreeNode], loader: SubtreeLoader) -> list[TreeNode]:
    """Collect the selected files in tree order.

    Args:
        nodes (Sequence[TreeNode]): nodes to collect from
        loader (SubtreeLoader): supplies children of unmaterialized directories

    Returns:
        list[TreeNode]: checked file nodes
    """
    files: list[TreeNode] = []
    for node in nodes:
        if not node.is_checked.is_selected:
            continue
        if node.is_file:
            files.append(node)
        else:
            files.extend(await collect_selected_files(await loader.children_of(node), loader))
    return files
