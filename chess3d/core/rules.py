"""Rules engine: king safety, legal moves, check, checkmate, stalemate and draws.

Every query here is read-only from the caller's point of view. Tentative moves
go through ``Board.simulate`` which restores the board on exit.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from chess3d.core.board import Board
from chess3d.core.piece import Piece
from chess3d.core.types import Color, PieceType, Square

logger = logging.getLogger(__name__)

MINOR_PIECES = (PieceType.KNIGHT, PieceType.BISHOP)


class GameState(str, Enum):
    ONGOING = "ongoing"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    KING_CAPTURED = "king_captured"


@dataclass
class GameStatus:
    state: GameState
    side_to_move: Color
    message: str
    winner: Optional[Color] = None
    in_check: dict = field(default_factory=dict)  # Color -> bool

    @property
    def is_over(self) -> bool:
        return self.state not in (GameState.ONGOING, GameState.CHECK)

    @property
    def is_draw(self) -> bool:
        return self.state in (GameState.STALEMATE, GameState.INSUFFICIENT_MATERIAL)


# ── Attack queries ──────────────────────────────────────────────

def is_king_in_check(board: Board, color: Color) -> bool:
    """True if any opposing piece has a legal-shape move onto ``color``'s king."""
    king = board.find_king(color)
    if king is None:
        logger.warning("No %s king on the board; treating as not in check", color.value)
        return False
    for piece in board.pieces_of(color.opponent):
        if piece.is_legal_shape(king.position, board):
            return True
    return False


def is_square_attacked(board: Board, square: Square, by_color: Color) -> bool:
    return any(p.attacks(square, board) for p in board.pieces_of(by_color))


# ── King safety ─────────────────────────────────────────────────

def leaves_own_king_in_check(board: Board, piece: Piece, target) -> bool:
    """Would playing ``piece`` to ``target`` leave its own king attacked."""
    with board.simulate(piece, target):
        return is_king_in_check(board, piece.color)


def _castling_crosses_check(board: Board, king: Piece, target: Square) -> bool:
    if is_king_in_check(board, king.color):
        return True
    step = 1 if target.file > king.position.file else -1
    crossed = Square(king.position.file + step, king.position.rank)
    return is_square_attacked(board, crossed, king.color.opponent)


def is_legal_move(board: Board, piece: Piece, target) -> bool:
    """Shape legality, castling restrictions and the king-safety filter."""
    target = Square(*target)
    if not piece.is_legal_shape(target, board):
        return False
    if piece.type is PieceType.KING and abs(target.file - piece.position.file) == 2:
        if _castling_crosses_check(board, piece, target):
            return False
    return not leaves_own_king_in_check(board, piece, target)


def legal_moves_for(board: Board, piece: Piece) -> List[Square]:
    return [sq for sq in piece.candidate_targets() if is_legal_move(board, piece, sq)]


def all_legal_moves(board: Board, color: Color) -> List[Tuple[Piece, Square]]:
    moves = []
    for piece in board.pieces_of(color):
        for target in legal_moves_for(board, piece):
            moves.append((piece, target))
    return moves


def has_legal_move(board: Board, color: Color) -> bool:
    for piece in board.pieces_of(color):
        for target in piece.candidate_targets():
            if is_legal_move(board, piece, target):
                return True
    return False


# ── Terminal conditions ─────────────────────────────────────────

def is_checkmate(board: Board, color: Color) -> bool:
    return is_king_in_check(board, color) and not has_legal_move(board, color)


def is_stalemate(board: Board, color: Color) -> bool:
    return not is_king_in_check(board, color) and not has_legal_move(board, color)


def has_insufficient_material(board: Board) -> bool:
    """K v K, K+minor v K, and K+B v K+B with bishops on the same square color."""
    others = [p for p in board.pieces if p.type is not PieceType.KING]
    if len(others) > 2:
        return False
    if not others:
        return True

    white = [p for p in others if p.color is Color.WHITE]
    black = [p for p in others if p.color is Color.BLACK]

    if len(others) == 1:
        return others[0].type in MINOR_PIECES

    if (len(white) == 1 and len(black) == 1
            and white[0].type is PieceType.BISHOP and black[0].type is PieceType.BISHOP):
        return white[0].position.is_light == black[0].position.is_light
    return False


def evaluate_status(board: Board, side_to_move: Color) -> GameStatus:
    """Status for the side about to move.

    Order: missing king, insufficient material, stalemate, checkmate, check.
    """
    for color in (Color.WHITE, Color.BLACK):
        if board.find_king(color) is None:
            logger.warning("%s king missing from the board", color.label)
            winner = color.opponent
            return GameStatus(
                GameState.KING_CAPTURED, side_to_move,
                f"{winner.label} wins! {color.label} king is captured.",
                winner=winner,
            )

    in_check = {c: is_king_in_check(board, c) for c in (Color.WHITE, Color.BLACK)}

    if has_insufficient_material(board):
        return GameStatus(GameState.INSUFFICIENT_MATERIAL, side_to_move,
                          "Draw by insufficient material", in_check=in_check)

    can_move = has_legal_move(board, side_to_move)
    if not can_move and not in_check[side_to_move]:
        return GameStatus(GameState.STALEMATE, side_to_move,
                          "Stalemate! The game is a draw", in_check=in_check)
    if not can_move:
        winner = side_to_move.opponent
        return GameStatus(GameState.CHECKMATE, side_to_move,
                          f"Checkmate! {winner.label} wins",
                          winner=winner, in_check=in_check)

    if in_check[side_to_move]:
        return GameStatus(GameState.CHECK, side_to_move,
                          f"{side_to_move.label}'s King is in CHECK!", in_check=in_check)
    return GameStatus(GameState.ONGOING, side_to_move,
                      f"{side_to_move.label}'s turn", in_check=in_check)
