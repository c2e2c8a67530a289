"""Data models for the opening repertoire tree."""

import weakref
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

ROOT_MOVE = "root"
STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


@dataclass(eq=False)
class RepertoireNode:
    """A position in the repertoire, reached from its parent by `move`."""

    fen: str
    move: str
    comment: str = ""
    labels: set[str] = field(default_factory=set)
    children: list["RepertoireNode"] = field(default_factory=list)
    _parent_ref: weakref.ref | None = field(default=None, repr=False)

    @property
    def parent(self) -> "RepertoireNode | None":
        return self._parent_ref() if self._parent_ref is not None else None

    @parent.setter
    def parent(self, node: "RepertoireNode | None") -> None:
        self._parent_ref = weakref.ref(node) if node is not None else None

    @property
    def is_root(self) -> bool:
        return self.move == ROOT_MOVE and self._parent_ref is None

    def add_child(self, child: "RepertoireNode") -> None:
        """Append a child. Sibling move uniqueness is the tree's job."""
        child.parent = self
        self.children.append(child)

    def find_child_by_move(self, move: str) -> "RepertoireNode | None":
        for child in self.children:
            if child.move == move:
                return child
        return None


class NodeRecord(BaseModel):
    """Flat, serialized form of one node. Parent identity is (parentFen, parentMove)."""

    model_config = ConfigDict(populate_by_name=True)

    fen: str
    move: str
    comment: str | None = ""
    labels: list[str] | None = Field(default_factory=list)
    parent_fen: str | None = Field(default=None, alias="parentFen")
    parent_move: str | None = Field(default=None, alias="parentMove")

    @property
    def identity(self) -> tuple[str, str]:
        return self.fen, self.move

    @classmethod
    def from_node(cls, node: RepertoireNode) -> "NodeRecord":
        parent = node.parent
        return cls(
            fen=node.fen,
            move=node.move,
            comment=node.comment,
            labels=sorted(node.labels),
            parent_fen=parent.fen if parent is not None else None,
            parent_move=parent.move if parent is not None else None,
        )
