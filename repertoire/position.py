"""
Move-to-position helper backed by python-chess.

The repertoire tree trusts whatever FEN it is given; this module is the
engine that produces those FENs from SAN moves.
"""

import logging
import re

import chess

from errors import IllegalMove
from models import RepertoireNode

logger = logging.getLogger(__name__)

_RESULTS = ("1-0", "0-1", "1/2-1/2", "*")
_MOVE_NUMBER = re.compile(r"^\d+\.+")


def resulting_fen(fen: str, san: str) -> str:
    """FEN after playing `san` from `fen`."""
    try:
        board = chess.Board(fen)
        board.push_san(san)
    except ValueError as e:
        # InvalidMoveError, IllegalMoveError, AmbiguousMoveError and a bad FEN
        # are all ValueErrors.
        raise IllegalMove(f"Cannot play {san} from {fen}: {e}", fen=fen, move=san) from e
    return board.fen()


def parse_pgn_moves(pgn: str) -> list[str]:
    """SAN moves from plain movetext such as "1.e4 c5 2.Nf3"; move numbers and results are dropped."""
    moves = []
    for token in pgn.split():
        san = _MOVE_NUMBER.sub("", token)
        if san and san not in _RESULTS:
            moves.append(san)
    return moves


def add_line(tree, moves: list[str], from_moves: list[str] | None = None) -> list[RepertoireNode]:
    """
    Insert a line of SAN moves after the line `from_moves` (the root by default).

    Parents are addressed by move path, so a line passing through a transposed
    position stays on its own branch. Returns the nodes along the line; stops
    early if an insertion fails. An illegal move raises IllegalMove with the
    preceding moves already inserted.
    """
    path = list(from_moves or [])
    start = tree.find_by_moves(path)
    if start is None:
        logger.warning("Line %s not found in repertoire tree.", " ".join(path))
        return []

    fen = start.fen
    nodes = []
    for san in moves:
        new_fen = resulting_fen(fen, san)
        node = tree.insert_at(path, new_fen, san)
        if node is None:
            break
        nodes.append(node)
        path.append(san)
        fen = node.fen
    return nodes
