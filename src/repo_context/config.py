from __future__ import annotations

from enum import StrEnum, auto

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Directories below this depth are listed lazily, when the user expands them.
DEPTH_CAP = 5

# Files larger than ~2500 LOC (150KB) are unchecked by default.
AUTO_SELECT_SIZE_LIMIT = 150_000

TOP_EXTENSIONS = 5

NO_EXTENSION = "no extension"


class NodeKind(StrEnum):
    """Kind of an entry in the remote source tree."""

    FILE = auto()
    DIR = auto()


class CheckState(StrEnum):
    """Tri-state selection of a tree node.

    Files only ever hold `UNCHECKED` or `CHECKED`. Directories hold `PARTIAL`
    when some, but not all, of their materialized descendants are selected.
    """

    UNCHECKED = auto()
    PARTIAL = auto()
    CHECKED = auto()

    @classmethod
    def from_bool(cls, value: bool) -> CheckState:  # noqa: FBT001
        return cls.CHECKED if value else cls.UNCHECKED

    @property
    def is_selected(self) -> bool:
        """Whether the node takes part in the selection (checked or partial)."""
        return self is not CheckState.UNCHECKED


class SelectionState(StrEnum):
    """Aggregate selection state of a group of files."""

    NONE = auto()
    PARTIAL = auto()
    FULL = auto()

    def to_check_state(self) -> CheckState:
        return {
            SelectionState.NONE: CheckState.UNCHECKED,
            SelectionState.PARTIAL: CheckState.PARTIAL,
            SelectionState.FULL: CheckState.CHECKED,
        }[self]


class ListingEntry(BaseModel):
    """One entry of a remote directory listing.

    Only the fields the tree needs are kept; anything else the remote API
    returns (sha, urls, ...) is ignored.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(..., min_length=1, description="Leaf segment of the path")
    path: str = Field(..., min_length=1, description="Full path from the repository root")
    type: str = Field(..., description="Remote entry type ('file', 'dir', 'symlink', ...)")
    size: int = Field(default=0, ge=0, description="Size in bytes as reported by the listing")

    @property
    def kind(self) -> NodeKind:
        return NodeKind.DIR if self.type == "dir" else NodeKind.FILE


class TreeNode(BaseModel):
    """A node of the lazily materialized repository tree.

    Nodes are immutable; every mutation of the tree builds new nodes with
    `model_copy(update=...)`. A directory whose `children` is empty has not
    been materialized yet (or really is empty, which is treated the same way).

    Attributes:
        name: Leaf segment of the path.
        path: Full path from the repository root, unique across the tree.
        kind: File or directory.
        depth: Distance from the root; entries of the root listing have depth 0.
        size: Byte size of a file, None for directories.
        aggregate_size: Rolled-up byte size of a directory's materialized
            subtree, None for files and unmaterialized directories.
        is_expanded: Whether a directory's children are visible.
        is_ignored: Result of the ignore classifier, fixed at creation.
        is_checked: Tri-state selection.
        children: Child nodes of a directory, None for files.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    kind: NodeKind
    depth: int = Field(default=0, ge=0)
    size: int | None = None
    aggregate_size: int | None = None
    is_expanded: bool = False
    is_ignored: bool = False
    is_checked: CheckState = CheckState.UNCHECKED
    children: tuple[TreeNode, ...] | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIR

    @property
    def is_file(self) -> bool:
        return self.kind is NodeKind.FILE

    @property
    def has_children(self) -> bool:
        """Whether the directory has materialized children."""
        return bool(self.children)

    @property
    def byte_size(self) -> int:
        """Own size for files, aggregate size for directories (0 when unknown)."""
        if self.is_file:
            return self.size or 0
        return self.aggregate_size or 0


class ExtensionStats(BaseModel):
    """Byte total, file count and selection state of one file extension."""

    model_config = ConfigDict(frozen=True)

    extension: str = Field(..., description="'.py', a dotfile name like '.gitignore', or 'no extension'")
    total_bytes: int = Field(..., ge=0)
    file_count: int = Field(..., ge=0)
    selection_state: SelectionState


class RateLimit(BaseModel):
    """Remaining quota of the remote API for the current credentials."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(..., ge=0)
    remaining: int = Field(..., ge=0)
    reset: int = Field(..., description="POSIX time at which the quota resets")
    used: int = Field(default=0, ge=0)

    @computed_field
    @property
    def remaining_ratio(self) -> float:
        if self.limit == 0:
            return 0.0
        return self.remaining / self.limit
