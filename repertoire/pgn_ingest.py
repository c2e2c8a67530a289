#!/usr/bin/env python3
"""
PGN Ingestion - grow the repertoire from annotated PGN files

Every variation of every game is added to the stored repertoire. Move
comments become node comments where the node has none yet.

Usage:
  python pgn_ingest.py --pgn lines/sicilian.pgn lines/french.pgn
  REPERTOIRE_STORE=postgres python pgn_ingest.py --pgn repertoire.pgn --key white
"""

import argparse
import logging
import sys
from pathlib import Path

import chess
import chess.pgn

sys.path.insert(0, str(Path(__file__).resolve().parent))
from config import Settings, configure_logging
from repertoire_tree import RepertoireTree
from store import build_store

logger = logging.getLogger(__name__)


def ingest_game(tree: RepertoireTree, game: chess.pgn.Game) -> int:
    """Add all variations of one game. Returns nodes created."""
    board = game.board()
    if board.fen() != tree.root.fen:
        logger.warning(
            "Skipping game %r: starts from %s, repertoire root is %s",
            game.headers.get("Event", "?"), board.fen(), tree.root.fen,
        )
        return 0

    before = len(tree)
    stack = [(game, [], board)]
    while stack:
        pgn_node, path, board = stack.pop()
        pending = []
        for variation in pgn_node.variations:
            san = board.san(variation.move)
            child_board = board.copy(stack=False)
            child_board.push(variation.move)
            node = tree.insert_at(path, child_board.fen(), san)
            if node is None:
                continue
            if variation.comment and not node.comment:
                node.comment = variation.comment.strip()
            pending.append((variation, path + [san], child_board))
        stack.extend(reversed(pending))
    return len(tree) - before


def ingest_pgn(tree: RepertoireTree, pgn_path: Path) -> int:
    """Add every game in a PGN file. Returns nodes created."""
    created = 0
    with open(pgn_path, encoding="utf-8", errors="replace") as f:
        while True:
            game = chess.pgn.read_game(f)
            if game is None:
                break
            for error in game.errors:
                logger.warning("%s: %s", pgn_path, error)
            created += ingest_game(tree, game)
    return created


def main():
    parser = argparse.ArgumentParser(description="Add PGN lines to the repertoire")
    parser.add_argument("--pgn", nargs="+", required=True, help="PGN file paths")
    parser.add_argument("--key", default=None, help="Store key (default: REPERTOIRE_KEY)")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    store = build_store(settings)
    key = args.key or settings.key

    tree = RepertoireTree.load_from(store, key, settings.root_fen, settings.conflict_policy)
    created = 0
    for p in args.pgn:
        path = Path(p)
        if not path.exists():
            print(f"Warning: {path} not found", file=sys.stderr)
            continue
        created += ingest_pgn(tree, path)

    if not tree.save_to(store, key):
        print(f"Error: could not save repertoire under {key}", file=sys.stderr)
        sys.exit(1)
    print(f"Added {created} positions; repertoire now has {len(tree)} nodes.")


if __name__ == "__main__":
    main()
