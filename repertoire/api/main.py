"""
FastAPI surface for the opening repertoire

Endpoints:
  GET   /tree              - Nested tree for rendering
  GET   /lines             - Every leaf line
  GET   /node/fen/{fen}    - Lookup by FEN (newest node for a transposed FEN)
  POST  /node/moves        - Lookup by move path
  POST  /node/pgn          - Lookup by movetext ("1.e4 c5 2.Nf3")
  POST  /move              - Add a move
  PATCH /node              - Set comment/labels on a node

Usage:
  uvicorn api.main:app --reload
"""

import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from config import Settings
from errors import IllegalMove, LabelKeyConflict
from export import tree_to_view
from models import RepertoireNode
from position import parse_pgn_moves, resulting_fen
from repertoire_tree import RepertoireTree
from store import build_store


class MovePathRequest(BaseModel):
    moves: list[str]  # e.g. ["e4", "c5", "Nf3"]


class PgnWalkRequest(BaseModel):
    moves: str  # e.g. "1.e4 c5 2.Nf3"


class AddMoveRequest(BaseModel):
    parent_fen: str
    move: str
    new_fen: str | None = None


class AnnotateRequest(BaseModel):
    moves: list[str]
    comment: str | None = None
    labels: list[str] | None = None


def node_to_response(tree: RepertoireTree, node: RepertoireNode) -> dict:
    """Convert node to API response dict."""
    parent = node.parent
    return {
        "fen": node.fen,
        "move": node.move,
        "moves": tree.moves_to(node),
        "comment": node.comment,
        "labels": sorted(node.labels),
        "parent_fen": parent.fen if parent is not None else None,
        "children": [{"move": c.move, "fen": c.fen} for c in node.children],
    }


def create_app(settings: Settings | None = None, store=None) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store if store is not None else build_store(settings)

    app = FastAPI(title="Opening Repertoire API", version="1.0.0")
    app.state.settings = settings
    app.state.store = store
    app.state.lock = threading.Lock()
    app.state.tree = RepertoireTree.load_from(store, settings.key, settings.root_fen, settings.conflict_policy)

    def save(tree: RepertoireTree) -> None:
        if not tree.save_to(store, settings.key):
            raise HTTPException(status_code=503, detail="Repertoire could not be saved")

    @app.get("/tree")
    def get_tree(request: Request):
        with request.app.state.lock:
            return tree_to_view(request.app.state.tree)

    @app.get("/lines")
    def get_lines(request: Request):
        with request.app.state.lock:
            return request.app.state.tree.lines()

    @app.get("/node/fen/{fen:path}")
    def get_node_by_fen(fen: str, request: Request):
        """Lookup node by FEN."""
        fen = fen.replace("_", " ")
        with request.app.state.lock:
            tree = request.app.state.tree
            node = tree.find_by_fen(fen)
            if node is None:
                raise HTTPException(status_code=404, detail="Node not found")
            return node_to_response(tree, node)

    @app.post("/node/moves")
    def get_node_by_moves(body: MovePathRequest, request: Request):
        with request.app.state.lock:
            tree = request.app.state.tree
            node = tree.find_by_moves(body.moves)
            if node is None:
                raise HTTPException(status_code=404, detail="Line not in repertoire")
            return node_to_response(tree, node)

    @app.post("/node/pgn")
    def walk_pgn(body: PgnWalkRequest, request: Request):
        """Walk the repertoire by a movetext string, return the final node."""
        moves = parse_pgn_moves(body.moves)
        if not moves:
            raise HTTPException(status_code=400, detail="Invalid PGN")
        with request.app.state.lock:
            tree = request.app.state.tree
            node = tree.find_by_moves(moves)
            if node is None:
                raise HTTPException(status_code=404, detail="Line not in repertoire")
            return node_to_response(tree, node)

    @app.post("/move")
    def add_move(body: AddMoveRequest, request: Request):
        """Add a move; the resulting FEN is computed when not supplied."""
        new_fen = body.new_fen
        if new_fen is None:
            try:
                new_fen = resulting_fen(body.parent_fen, body.move)
            except IllegalMove as e:
                raise HTTPException(status_code=400, detail=e.to_dict())

        with request.app.state.lock:
            tree = request.app.state.tree
            tree.clear_notices()
            try:
                node = tree.insert_move(body.parent_fen, new_fen, body.move)
            except LabelKeyConflict as e:
                raise HTTPException(status_code=409, detail=e.to_dict())
            notices = [n.to_dict() for n in tree.notices]
            tree.clear_notices()
            if node is None:
                raise HTTPException(status_code=404, detail=notices[0] if notices else "Parent not found")
            save(tree)
            return {"node": node_to_response(tree, node), "notices": notices}

    @app.patch("/node")
    def annotate_node(body: AnnotateRequest, request: Request):
        with request.app.state.lock:
            tree = request.app.state.tree
            node = tree.find_by_moves(body.moves)
            if node is None:
                raise HTTPException(status_code=404, detail="Line not in repertoire")
            if body.comment is not None:
                node.comment = body.comment
            if body.labels is not None:
                node.labels = set(body.labels)
            save(tree)
            return node_to_response(tree, node)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
