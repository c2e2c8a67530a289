#!/usr/bin/env python3
"""
Export CLI - Output the repertoire in various formats

Formats: pgn (variations + comments), view (nested JSON for tree widgets),
snapshot (the flat storage format)

Usage:
  python export.py --format pgn --output repertoire.pgn
  python export.py --format view --output tree.json --key black
"""

import argparse
import json
import sys
from pathlib import Path

import chess
import chess.pgn

sys.path.insert(0, str(Path(__file__).resolve().parent))
from config import Settings, configure_logging
from errors import IllegalMove
from models import RepertoireNode
from repertoire_tree import RepertoireTree
from store import build_store


def node_to_view(node: RepertoireNode) -> dict:
    """Nested rendering model: what a tree widget shows for each node."""
    return {
        "label": "Start" if node.is_root else node.move,
        "move": node.move,
        "fen": node.fen,
        "comment": node.comment,
        "labels": sorted(node.labels),
        "children": [node_to_view(c) for c in node.children],
    }


def tree_to_view(tree: RepertoireTree) -> dict:
    return node_to_view(tree.root)


def pgn_comment(node: RepertoireNode) -> str:
    parts = []
    if node.comment:
        parts.append(node.comment)
    if node.labels:
        parts.append(f"[%labels {','.join(sorted(node.labels))}]")
    return " ".join(parts)


def _add_pgn_node(pgn_node: chess.pgn.GameNode, board: chess.Board, node: RepertoireNode) -> None:
    """Recursively add moves and variations to a chess.pgn game node."""
    for i, child in enumerate(node.children):
        try:
            move = board.parse_san(child.move)
        except ValueError:
            continue

        if i == 0:
            next_node = pgn_node.add_main_variation(move)
        else:
            next_node = pgn_node.add_variation(move)
        next_node.comment = pgn_comment(child)

        board.push(move)
        _add_pgn_node(next_node, board, child)
        board.pop()


def export_pgn(tree: RepertoireTree, event: str = "Opening Repertoire") -> str:
    """One PGN game; the first child at each node is the main line."""
    try:
        board = chess.Board(tree.root.fen)
    except ValueError as e:
        raise IllegalMove(f"Root position is not a valid FEN: {e}", fen=tree.root.fen) from e

    game = chess.pgn.Game.from_board(board)
    game.headers["Event"] = event
    game.headers["Site"] = "Opening Repertoire"
    game.headers["Result"] = "*"
    game.comment = pgn_comment(tree.root)

    _add_pgn_node(game, board, tree.root)
    return str(game)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--format", choices=["pgn", "view", "snapshot"], default="pgn")
    parser.add_argument("--output", "-o", required=True)
    parser.add_argument("--key", default=None, help="Store key (default: REPERTOIRE_KEY)")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    key = args.key or settings.key
    tree = RepertoireTree.load_from(build_store(settings), key, settings.root_fen)

    out = Path(args.output)
    if args.format == "pgn":
        content = export_pgn(tree, event=key) + "\n"
    elif args.format == "view":
        content = json.dumps(tree_to_view(tree), indent=2)
    else:
        content = tree.serialize()
    out.write_text(content, encoding="utf-8")
    print(f"Exported {len(tree)} nodes ({args.format}) to {out}")


if __name__ == "__main__":
    main()
