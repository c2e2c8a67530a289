"""
Repertoire tree: insertion, lookup and the flat snapshot format.

The FEN index (`node_map`) is lossy under transpositions. When two move
orders reach the same FEN, both positions stay in the tree as separate nodes
and the index points at the most recently inserted (or reconstructed) one.
`find_by_moves` is the path-exact lookup and should be preferred whenever
the caller knows the line.
"""

import logging
from collections import deque
from typing import Iterable, Iterator

from pydantic import TypeAdapter, ValidationError

from config import ConflictPolicy
from errors import (
    LabelKeyConflict,
    MalformedInput,
    RepertoireError,
    RootMismatch,
    TranspositionCollision,
    UnknownParent,
)
from models import ROOT_MOVE, STARTING_FEN, NodeRecord, RepertoireNode

logger = logging.getLogger(__name__)

_records = TypeAdapter(list[NodeRecord])


class RepertoireTree:
    def __init__(
        self,
        root_fen: str = STARTING_FEN,
        conflict_policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING,
    ):
        self.root = RepertoireNode(root_fen, ROOT_MOVE)
        self.node_map: dict[str, RepertoireNode] = {root_fen: self.root}
        self.conflict_policy = conflict_policy
        self.notices: list[RepertoireError] = []

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def _notice(self, error: RepertoireError, level: int = logging.WARNING) -> None:
        logger.log(level, "%s: %s", error.code, error.message)
        self.notices.append(error)

    def clear_notices(self) -> None:
        self.notices.clear()

    # -- mutation -----------------------------------------------------------

    def insert_move(self, parent_fen: str, new_fen: str, move: str) -> RepertoireNode | None:
        """
        Add the position reached by `move` from `parent_fen`.

        Returns the new node, the existing node for an already known move, or
        None when the parent FEN is not in the tree.
        """
        parent = self.node_map.get(parent_fen)
        if parent is None:
            self._notice(
                UnknownParent(f"Parent FEN {parent_fen} not found in repertoire tree.", parent_fen=parent_fen),
                logging.ERROR,
            )
            return None
        return self._insert_under(parent, new_fen, move)

    def insert_at(self, moves: Iterable[str], new_fen: str, move: str) -> RepertoireNode | None:
        """Like insert_move, but the parent is addressed by its move path from root."""
        moves = list(moves)
        parent = self.find_by_moves(moves)
        if parent is None:
            self._notice(
                UnknownParent(f"Line {' '.join(moves)} not found in repertoire tree.", moves=moves),
                logging.ERROR,
            )
            return None
        return self._insert_under(parent, new_fen, move)

    def _insert_under(self, parent: RepertoireNode, new_fen: str, move: str) -> RepertoireNode:
        parent_fen = parent.fen
        existing = parent.find_child_by_move(move)
        if existing is not None:
            if existing.fen != new_fen:
                conflict = LabelKeyConflict(
                    f"Move {move} from {parent_fen} already leads to {existing.fen}, not {new_fen}.",
                    parent_fen=parent_fen,
                    move=move,
                    existing_fen=existing.fen,
                    new_fen=new_fen,
                )
                if self.conflict_policy is ConflictPolicy.RAISE:
                    raise conflict
                self._notice(conflict)
            return existing

        indexed = self.node_map.get(new_fen)
        if indexed is not None and indexed.parent is not parent:
            self._notice(
                TranspositionCollision(
                    f"FEN {new_fen} already exists from a different line; adding a separate node for this path.",
                    fen=new_fen,
                    move=move,
                ),
                logging.INFO,
            )

        node = RepertoireNode(new_fen, move)
        parent.add_child(node)
        self.node_map[new_fen] = node
        return node

    # -- lookup -------------------------------------------------------------

    def find_by_fen(self, fen: str) -> RepertoireNode | None:
        """Index lookup. For a transposed FEN this is the newest node only."""
        return self.node_map.get(fen)

    def find_by_moves(self, moves: Iterable[str]) -> RepertoireNode | None:
        node = self.root
        for move in moves:
            node = node.find_child_by_move(move)
            if node is None:
                return None
        return node

    def walk(self) -> Iterator[RepertoireNode]:
        """Breadth-first over every node reachable from root."""
        queue = deque([self.root])
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(node.children)

    def moves_to(self, node: RepertoireNode) -> list[str]:
        moves = []
        while node is not None and not node.is_root:
            moves.append(node.move)
            node = node.parent
        moves.reverse()
        return moves

    def lines(self) -> list[list[str]]:
        """Move sequence of every leaf, main line first."""
        out = []
        stack = [(self.root, [])]
        while stack:
            node, path = stack.pop()
            if not node.children:
                if path:
                    out.append(path)
                continue
            for child in reversed(node.children):
                stack.append((child, path + [child.move]))
        return out

    def reindex(self) -> None:
        self.node_map = {}
        for node in self.walk():
            self.node_map[node.fen] = node

    # -- serialization ------------------------------------------------------

    def serialize(self) -> str:
        """Flat JSON list of node records in breadth-first order."""
        records = []
        seen = set()
        for node in self.walk():
            record = NodeRecord.from_node(node)
            if record.identity in seen:
                continue
            seen.add(record.identity)
            records.append(record)
        return _records.dump_json(records, by_alias=True).decode("utf-8")

    @classmethod
    def deserialize(
        cls,
        text: str,
        root_fen: str = STARTING_FEN,
        conflict_policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING,
    ) -> "RepertoireTree":
        """
        Rebuild a tree from `serialize()` output. Never raises.

        Malformed input or a missing/mismatched root record yields a fresh
        tree rooted at `root_fen` with the failure recorded in `notices`.
        """
        tree = cls(root_fen, conflict_policy)
        try:
            records = _records.validate_json(text)
        except ValidationError as e:
            tree._notice(MalformedInput(f"Serialized repertoire is not a list of node records: {e.error_count()} error(s)."))
            return tree
        if not records:
            return tree

        root_record = next((r for r in records if r.move == ROOT_MOVE and r.fen == root_fen), None)
        if root_record is None:
            tree._notice(RootMismatch(f"Root node {root_fen} not found in serialized data.", root_fen=root_fen))
            return tree

        tree.root.comment = root_record.comment or ""
        tree.root.labels = set(root_record.labels or [])

        # Last record wins for a shared FEN; the root keeps its own key.
        lookup: dict[str, RepertoireNode] = {}
        for record in records:
            if record is root_record:
                continue
            node = RepertoireNode(record.fen, record.move, record.comment or "", set(record.labels or []))
            if record.fen != root_fen:
                lookup[record.fen] = node
        lookup[root_fen] = tree.root

        for record in records:
            if record.parent_fen is None or record is root_record:
                continue
            tree._link(record, lookup)

        tree.reindex()
        unreachable = len(records) - len(tree)
        if unreachable > 0:
            logger.debug("%d serialized record(s) not reachable from root were dropped", unreachable)
        return tree

    def _link(self, record: NodeRecord, lookup: dict[str, RepertoireNode]) -> None:
        parent = lookup.get(record.parent_fen)
        child = lookup.get(record.fen)
        if parent is None or child is None:
            logger.warning("Could not link %s (%s) to parent %s", record.fen, record.move, record.parent_fen)
            return
        sibling = parent.find_child_by_move(record.move)
        if child in parent.children:
            if sibling is None:
                child.move = record.move
            elif sibling is not child:
                self._notice(_relink_conflict(record, sibling))
            return
        if child is self.root or child.parent is not None or _is_ancestor(child, parent):
            self._notice(
                TranspositionCollision(
                    f"FEN {record.fen} via {record.move} is already placed elsewhere in the tree; record not relinked.",
                    fen=record.fen,
                    move=record.move,
                    parent_fen=record.parent_fen,
                ),
                logging.INFO,
            )
            return
        if sibling is not None:
            self._notice(_relink_conflict(record, sibling))
            return
        child.move = record.move
        parent.add_child(child)

    # -- persistence --------------------------------------------------------

    def save_to(self, store, key: str) -> bool:
        """Write a snapshot to a key/value store. The tree is unchanged on failure."""
        try:
            ok = store.set(key, self.serialize())
        except Exception:
            logger.exception("Store raised while saving repertoire under %s", key)
            return False
        if ok:
            logger.debug("Repertoire saved under %s", key)
        else:
            logger.error("Could not save repertoire under %s", key)
        return ok

    @classmethod
    def load_from(
        cls,
        store,
        key: str,
        root_fen: str = STARTING_FEN,
        conflict_policy: ConflictPolicy = ConflictPolicy.KEEP_EXISTING,
    ) -> "RepertoireTree":
        """Load a snapshot, or a fresh tree when there is none or it is unusable."""
        try:
            text = store.get(key)
        except Exception:
            logger.exception("Store raised while loading repertoire under %s, starting a new one.", key)
            return cls(root_fen, conflict_policy)
        if text is None:
            logger.info("No repertoire stored under %s, starting a new one.", key)
            return cls(root_fen, conflict_policy)
        return cls.deserialize(text, root_fen, conflict_policy)


def _relink_conflict(record: NodeRecord, sibling: RepertoireNode) -> LabelKeyConflict:
    return LabelKeyConflict(
        f"Move {record.move} from {record.parent_fen} already leads to {sibling.fen}, not {record.fen}.",
        parent_fen=record.parent_fen,
        move=record.move,
        existing_fen=sibling.fen,
        new_fen=record.fen,
    )


def _is_ancestor(candidate: RepertoireNode, node: RepertoireNode | None) -> bool:
    while node is not None:
        if node is candidate:
            return True
        node = node.parent
    return False
