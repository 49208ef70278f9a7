"""Per-repository selection session.

A `RepoSession` is created when a repository is picked and thrown away when
another one is picked. It owns the tree snapshot and the values derived from
it (selected bytes, extension statistics, context document) and exposes the
mutators a front end calls.

Every assignment of a new tree bumps `generation`. Asynchronous work started
against an older generation never overwrites newer state: `refresh` drops
its results, and `toggle_directory` grafts the fetched children onto the
tree that is current when the listing returns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from repo_context import selection
from repo_context.accounting import SubtreeLoader, collect_selected_files, count_selected_bytes
from repo_context.config import AUTO_SELECT_SIZE_LIMIT, DEPTH_CAP, CheckState
from repo_context.extensions import analyze_extensions
from repo_context.logging import logger
from repo_context.output_construction import build_context_document
from repo_context.tree import aggregate_sizes, find_node, iter_nodes, materialize, replace_node

if TYPE_CHECKING:
    from collections.abc import Callable

    from repo_context.config import ExtensionStats, TreeNode
    from repo_context.sources import ContentSource


class RepoSession:
    """Selection state of one repository.

    Args:
        source: Collaborator used to list directories and read files.
        depth_cap: Depth down to which directories are listed eagerly.
        auto_select_size_limit: Files above this many bytes start unchecked.
        on_progress: Optional callback receiving loading status lines.
        auto_refresh: Recompute the derived values after every mutation. When
            False, callers batch mutations and call `refresh` themselves.
    """

    def __init__(
        self,
        source: ContentSource,
        *,
        depth_cap: int = DEPTH_CAP,
        auto_select_size_limit: int = AUTO_SELECT_SIZE_LIMIT,
        on_progress: Callable[[str], None] | None = None,
        auto_refresh: bool = True,
    ) -> None:
        self.source = source
        self.depth_cap = depth_cap
        self.auto_select_size_limit = auto_select_size_limit
        self._on_progress = on_progress
        self.auto_refresh = auto_refresh

        self.tree: tuple[TreeNode, ...] = ()
        self.generation = 0
        self.selected_bytes = 0
        self.extension_stats: list[ExtensionStats] = []
        self.context_document = ""
        self.loading = False
        self.loading_status = ""
        self.error: str | None = None

    def _set_tree(self, tree: tuple[TreeNode, ...]) -> None:
        self.tree = tree
        self.generation += 1

    def _progress(self, message: str) -> None:
        self.loading_status = message
        if self._on_progress is not None:
            self._on_progress(message)

    async def _after_change(self) -> None:
        if self.auto_refresh:
            await self.refresh()

    def _loader(self) -> SubtreeLoader:
        return SubtreeLoader(
            self.source,
            depth_cap=self.depth_cap,
            auto_select_size_limit=self.auto_select_size_limit,
        )

    async def load(self) -> None:
        """List the repository from the root, down to the depth cap, and recompute."""
        self.loading = True
        self.error = None
        self._set_tree(())
        self._progress("Initializing...")
        try:
            tree = await materialize(
                self.source,
                depth_cap=self.depth_cap,
                auto_select_size_limit=self.auto_select_size_limit,
                on_progress=self._progress,
            )
        finally:
            self.loading = False
            self.loading_status = ""

        if not tree:
            self.error = "Repository is empty or could not be listed."
        logger.info(
            "Loaded repository tree",
            roots=len(tree),
            nodes=sum(1 for _ in iter_nodes(tree)),
            error=self.error,
        )
        self._set_tree(selection.recompute_ancestor_states(tree))
        await self._after_change()

    async def refresh(self) -> bool:
        """Recompute selected bytes, extension statistics and the context document.

        Returns:
            bool: False when the tree changed while recomputing and the results were dropped.
        """
        generation = self.generation
        tree = self.tree
        loader = self._loader()

        selected_bytes = await count_selected_bytes(tree, loader) if tree else 0
        stats = analyze_extensions(tree)
        document = ""
        if selected_bytes > 0:
            files = await collect_selected_files(tree, loader)
            document = await build_context_document(files, self.source)

        if generation != self.generation:
            logger.debug("Dropping stale recompute", generation=generation, current=self.generation)
            return False
        self.selected_bytes = selected_bytes
        self.extension_stats = stats
        self.context_document = document
        return True

    async def selected_files(self) -> list[TreeNode]:
        """Selected files in tree order, listing unexpanded selected directories as needed."""
        return await collect_selected_files(self.tree, self._loader())

    async def toggle_directory(self, path: str) -> None:
        """Expand or collapse a directory, listing its children on first expansion."""
        node = find_node(self.tree, path)
        if node is None or not node.is_dir:
            logger.warning("Cannot expand unknown directory", path=path)
            return

        if node.is_expanded:
            self._set_tree(replace_node(self.tree, path, lambda n: n.model_copy(update={"is_expanded": False})))
            await self._after_change()
            return

        children = node.children or ()
        inherited = node.is_checked is CheckState.CHECKED
        if not node.has_children:
            self._progress(f"Expanding {path}...")
            try:
                children = await materialize(
                    self.source,
                    path,
                    node.depth + 1,
                    inherited,
                    depth_cap=self.depth_cap,
                    auto_select_size_limit=self.auto_select_size_limit,
                )
            finally:
                self.loading_status = ""

        current = find_node(self.tree, path)
        if current is None:
            logger.debug("Directory vanished while expanding", path=path)
            return
        if not node.has_children and (current.is_checked is CheckState.CHECKED) != inherited:
            children = selection.apply_state(children, CheckState.from_bool(not inherited))

        def expand(n: TreeNode) -> TreeNode:
            update: dict[str, object] = {"is_expanded": True}
            if not n.has_children:
                update["children"] = children
            return n.model_copy(update=update)

        tree = aggregate_sizes(replace_node(self.tree, path, expand))
        self._set_tree(selection.recompute_ancestor_states(tree))
        logger.debug("Expanded directory", path=path, children=len(children))
        await self._after_change()

    async def toggle_checkbox(self, path: str) -> None:
        self._set_tree(selection.toggle_checkbox(self.tree, path))
        await self._after_change()

    async def toggle_extension_selection(self, extension: str) -> None:
        """Select every file of `extension`, or deselect them if all are already selected."""
        self._set_tree(selection.toggle_extension_selection(self.tree, extension, analyze_extensions(self.tree)))
        await self._after_change()

    async def select_all(self) -> None:
        self._set_tree(selection.select_all(self.tree))
        await self._after_change()

    async def deselect_all(self) -> None:
        self._set_tree(selection.deselect_all(self.tree))
        await self._after_change()
