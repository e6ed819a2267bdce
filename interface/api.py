"""FastAPI REST interface consumed by the browser front end."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from chess3d import __version__
from chess3d.config import CONFIG
from chess3d.core.types import Square
from chess3d.game import Game

logging.basicConfig(level=CONFIG.log_level)
_log = logging.getLogger(__name__)

app = FastAPI(title=CONFIG.ui.engine_name, version=__version__)

# Shared game instance; Game serializes its own mutations.
game = Game()


class FenRequest(BaseModel):
    fen: str


class MoveRequest(BaseModel):
    move: Optional[str] = None   # UCI format e.g. "e2e4"
    source: Optional[str] = None  # or explicit squares
    target: Optional[str] = None


class ComputerMoveRequest(BaseModel):
    color: Optional[str] = None


class NewGameRequest(BaseModel):
    mode: Optional[str] = None


def _parse_move(req: MoveRequest):
    if req.move:
        text = req.move.strip().lower()
        if len(text) != 4:
            raise HTTPException(status_code=400, detail=f"Invalid UCI move: {req.move}")
        source, target = text[:2], text[2:]
    elif req.source and req.target:
        source, target = req.source, req.target
    else:
        raise HTTPException(status_code=400, detail="Provide 'move' or 'source' and 'target'")
    try:
        return Square.from_name(source), Square.from_name(target)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid square in move: {source}{target}")


@app.get("/board")
def get_board():
    return game.snapshot()


@app.get("/moves/{square}")
def get_moves(square: str):
    try:
        origin = Square.from_name(square)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid square: {square}")
    return {"square": origin.name, "moves": [sq.name for sq in game.legal_moves(origin)]}


@app.post("/move")
def make_move(req: MoveRequest):
    source, target = _parse_move(req)
    result = game.submit_move(source, target)
    if not result.accepted:
        raise HTTPException(status_code=400, detail=result.reason)
    return {**game.snapshot(), "move": result.uci, "result": result.to_dict()}


@app.post("/computer-move")
def computer_move(req: ComputerMoveRequest = ComputerMoveRequest()):
    if game.game_over:
        raise HTTPException(status_code=400, detail="Game is already over")
    color = req.color or game.current_player.value
    if color not in ("white", "black"):
        raise HTTPException(status_code=400, detail=f"Invalid color: {color}")
    result = game.request_automated_move(color)
    if result is None:
        if game.game_over:
            return {**game.snapshot(), "move": None}
        raise HTTPException(status_code=400, detail=f"It is not {color}'s turn")
    return {**game.snapshot(), "move": result.uci, "result": result.to_dict()}


@app.post("/undo")
def undo_move():
    undone = game.undo()
    return {**game.snapshot(), "undone": undone}


@app.post("/position")
def set_position(req: FenRequest):
    try:
        game.load_fen(req.fen)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {e}")
    return {"fen": game.fen()}


@app.post("/reset")
def reset_board(req: NewGameRequest = NewGameRequest()):
    try:
        game.new_game(mode=req.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _log.info("New %s game", game.mode)
    return {"fen": game.fen(), "mode": game.mode}
