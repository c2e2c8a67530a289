"""Tests for pgn_ingest.py"""

import io
import sys
from pathlib import Path

import chess.pgn

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pgn_ingest import ingest_game, ingest_pgn
from repertoire_tree import RepertoireTree

REPERTOIRE_PGN = """[Event "White repertoire"]
[Result "*"]

1. e4 c5 (1... e5 2. Nf3) 2. Nf3 { Open Sicilian } d6 *

[Event "Queen's pawn"]
[Result "*"]

1. d4 d5 *
"""

FROM_POSITION_PGN = """[Event "Endgame drill"]
[SetUp "1"]
[FEN "8/8/8/4k3/8/8/4P3/4K3 w - - 0 1"]
[Result "*"]

1. Kd2 *
"""


def test_ingest_pgn_adds_all_variations(tmp_path):
    pgn_file = tmp_path / "rep.pgn"
    pgn_file.write_text(REPERTOIRE_PGN)
    tree = RepertoireTree()

    created = ingest_pgn(tree, pgn_file)

    assert created == 8
    assert tree.find_by_moves(["e4", "c5", "Nf3", "d6"]) is not None
    assert tree.find_by_moves(["e4", "e5", "Nf3"]) is not None
    assert tree.find_by_moves(["d4", "d5"]) is not None
    assert [c.move for c in tree.root.children] == ["e4", "d4"]
    assert [c.move for c in tree.find_by_moves(["e4"]).children] == ["c5", "e5"]


def test_ingest_copies_move_comments(tmp_path):
    pgn_file = tmp_path / "rep.pgn"
    pgn_file.write_text(REPERTOIRE_PGN)
    tree = RepertoireTree()
    ingest_pgn(tree, pgn_file)
    assert tree.find_by_moves(["e4", "c5", "Nf3"]).comment == "Open Sicilian"


def test_ingest_does_not_overwrite_existing_comment():
    tree = RepertoireTree()
    game = chess.pgn.read_game(io.StringIO("1. e4 { from pgn } *"))
    ingest_game(tree, game)
    tree.find_by_moves(["e4"]).comment = "mine"
    assert ingest_game(tree, game) == 0
    assert tree.find_by_moves(["e4"]).comment == "mine"


def test_ingest_skips_games_from_other_positions():
    tree = RepertoireTree()
    game = chess.pgn.read_game(io.StringIO(FROM_POSITION_PGN))
    assert ingest_game(tree, game) == 0
    assert len(tree) == 1
