"""Tri-state selection over the repository tree.

All functions here are pure: they take the root-level nodes and return a
new tree. Selection is pushed down on user toggles and folded back up by
`recompute_ancestor_states`, which derives a directory's state from its
materialized children.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from repo_context.config import CheckState, SelectionState
from repo_context.extensions import analyze_extensions, extension_key, find_extension
from repo_context.logging import logger
from repo_context.tree import find_node, replace_node

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_context.config import ExtensionStats, TreeNode


def selection_state(node: TreeNode) -> SelectionState:
    """Derive the selection state of a node from its materialized subtree.

    Files and directories without materialized children report their own
    stored state. Other directories are FULL when every child is FULL,
    PARTIAL when at least one child is FULL or PARTIAL, NONE otherwise.
    """
    if node.is_file:
        return SelectionState.FULL if node.is_checked.is_selected else SelectionState.NONE
    if not node.has_children:
        return {
            CheckState.UNCHECKED: SelectionState.NONE,
            CheckState.PARTIAL: SelectionState.PARTIAL,
            CheckState.CHECKED: SelectionState.FULL,
        }[node.is_checked]

    states = [selection_state(child) for child in node.children or ()]
    if all(s is SelectionState.FULL for s in states):
        return SelectionState.FULL
    if any(s is not SelectionState.NONE for s in states):
        return SelectionState.PARTIAL
    return SelectionState.NONE


def recompute_ancestor_states(nodes: Sequence[TreeNode]) -> tuple[TreeNode, ...]:
    """Fold selection bottom-up so every directory reflects its children.

    Idempotent: applying it to its own output returns an equal tree.
    """
    out: list[TreeNode] = []
    for node in nodes:
        if node.is_dir and node.has_children:
            children = recompute_ancestor_states(node.children or ())
            updated = node.model_copy(update={"children": children})
            node = updated.model_copy(  # noqa: PLW2901
                update={"is_checked": selection_state(updated).to_check_state()},
            )
        out.append(node)
    return tuple(out)


def apply_state(nodes: Sequence[TreeNode], state: CheckState) -> tuple[TreeNode, ...]:
    """Set `state` on `nodes` and all their descendants; ignored nodes are forced unchecked."""
    out: list[TreeNode] = []
    for node in nodes:
        update: dict[str, object] = {"is_checked": CheckState.UNCHECKED if node.is_ignored else state}
        if node.children:
            update["children"] = apply_state(node.children, state)
        out.append(node.model_copy(update=update))
    return tuple(out)


def toggle_checkbox(nodes: Sequence[TreeNode], path: str) -> tuple[TreeNode, ...]:
    """Flip the selection of the node at `path` and of its whole subtree.

    An unchecked node becomes checked. A checked or partially checked node
    becomes unchecked: a click on a partial directory clears it, it never
    completes it. Ignored descendants always end up unchecked, and toggling
    an ignored node itself does nothing.

    Args:
        nodes (Sequence[TreeNode]): root-level nodes of the tree
        path (str): path of the node to toggle

    Returns:
        tuple[TreeNode, ...]: the updated tree with ancestor states recomputed
    """
    target = find_node(nodes, path)
    if target is None:
        logger.warning("Cannot toggle unknown path", path=path)
        return tuple(nodes)
    if target.is_ignored:
        logger.debug("Ignored node cannot be selected", path=path)
        return tuple(nodes)

    if target.is_checked is CheckState.UNCHECKED:
        new_state = CheckState.CHECKED
    else:
        new_state = CheckState.UNCHECKED

    def apply(node: TreeNode) -> TreeNode:
        update: dict[str, object] = {"is_checked": new_state}
        if node.children:
            update["children"] = apply_state(node.children, new_state)
        return node.model_copy(update=update)

    return recompute_ancestor_states(replace_node(nodes, path, apply))


def set_extension_checked(
    nodes: Sequence[TreeNode],
    extension: str,
    checked: bool,  # noqa: FBT001
) -> tuple[TreeNode, ...]:
    """Check or uncheck every non-ignored materialized file with the given extension key."""
    state = CheckState.from_bool(checked)

    def walk(level: Sequence[TreeNode]) -> tuple[TreeNode, ...]:
        out: list[TreeNode] = []
        for node in level:
            if node.is_file and not node.is_ignored and extension_key(node.name) == extension:
                node = node.model_copy(update={"is_checked": state})  # noqa: PLW2901
            elif node.children:
                node = node.model_copy(update={"children": walk(node.children)})  # noqa: PLW2901
            out.append(node)
        return tuple(out)

    return recompute_ancestor_states(walk(nodes))


def toggle_extension_selection(
    nodes: Sequence[TreeNode],
    extension: str,
    stats: Sequence[ExtensionStats] | None = None,
) -> tuple[TreeNode, ...]:
    """Bulk-toggle an extension: FULL goes to none, anything else goes to full.

    The current state is read from `stats` (the visible-file statistics);
    an extension missing from them counts as NONE.

    Args:
        nodes (Sequence[TreeNode]): root-level nodes of the tree
        extension (str): the extension key, as produced by `extension_key`
        stats (Sequence[ExtensionStats] | None): current statistics, computed from `nodes` if omitted

    Returns:
        tuple[TreeNode, ...]: the updated tree with ancestor states recomputed
    """
    if stats is None:
        stats = analyze_extensions(nodes)
    current = find_extension(stats, extension)
    state = current.selection_state if current is not None else SelectionState.NONE
    return set_extension_checked(nodes, extension, state is not SelectionState.FULL)


def _set_all(nodes: Sequence[TreeNode], state: CheckState) -> tuple[TreeNode, ...]:
    return recompute_ancestor_states(apply_state(nodes, state))


def select_all(nodes: Sequence[TreeNode]) -> tuple[TreeNode, ...]:
    """Check every non-ignored node; ignored nodes stay unchecked."""
    return _set_all(nodes, CheckState.CHECKED)


def deselect_all(nodes: Sequence[TreeNode]) -> tuple[TreeNode, ...]:
    return _set_all(nodes, CheckState.UNCHECKED)
