"""FEN import/export through python-chess.

python-chess does the parsing and validation; this module only translates
between its ``chess.Board`` and our piece-object ``Board``. Movement flags are
not part of FEN, so they are derived: a king or rook keeps ``has_moved`` False
only while a castling right still needs it, and a pawn is unmoved only on its
starting rank.
"""

from typing import Tuple

import chess

from chess3d.core.board import Board
from chess3d.core.types import Color, PieceType, Square

_TYPE_TO_CHESS = {
    PieceType.PAWN: chess.PAWN,
    PieceType.KNIGHT: chess.KNIGHT,
    PieceType.BISHOP: chess.BISHOP,
    PieceType.ROOK: chess.ROOK,
    PieceType.QUEEN: chess.QUEEN,
    PieceType.KING: chess.KING,
}
_CHESS_TO_TYPE = {v: k for k, v in _TYPE_TO_CHESS.items()}


def to_chess_color(color: Color) -> chess.Color:
    return chess.WHITE if color is Color.WHITE else chess.BLACK


def from_chess_color(color: chess.Color) -> Color:
    return Color.WHITE if color == chess.WHITE else Color.BLACK


def board_from_fen(fen: str) -> Tuple[Board, Color]:
    """Build a Board from FEN. Raises ValueError on malformed input."""
    cb = chess.Board(fen)
    board = Board()

    for index, cp in sorted(cb.piece_map().items()):
        square = Square.from_index(index)
        color = from_chess_color(cp.color)
        piece_type = _CHESS_TO_TYPE[cp.piece_type]
        if piece_type is PieceType.PAWN:
            has_moved = square.rank != color.home_rank + color.forward
        elif piece_type is PieceType.ROOK:
            has_moved = not (cb.castling_rights & chess.BB_SQUARES[index])
        elif piece_type is PieceType.KING:
            rights = cb.castling_rights & chess.BB_RANKS[color.home_rank]
            has_moved = square != Square(4, color.home_rank) or not rights
        else:
            has_moved = square.rank != color.home_rank
        board.add_piece(piece_type, color, square, has_moved=has_moved)

    if cb.ep_square is not None:
        target = Square.from_index(cb.ep_square)
        mover = from_chess_color(not cb.turn)
        pawn = board.piece_at(target.offset(0, mover.forward))
        if pawn is not None and pawn.type is PieceType.PAWN and pawn.color is mover:
            board.en_passant_target = target
            pawn.moved_two_squares = True

    return board, from_chess_color(cb.turn)


def to_chess_board(board: Board, turn: Color, halfmove_clock: int = 0,
                   fullmove_number: int = 1) -> chess.Board:
    cb = chess.Board.empty()
    for piece in board.pieces:
        cb.set_piece_at(piece.position.chess_index,
                        chess.Piece(_TYPE_TO_CHESS[piece.type], to_chess_color(piece.color)))
    cb.turn = to_chess_color(turn)

    rights = 0
    for color in (Color.WHITE, Color.BLACK):
        king = board.piece_at(Square(4, color.home_rank))
        if king is None or king.type is not PieceType.KING or king.color is not color or king.has_moved:
            continue
        for file in (0, 7):
            rook = board.piece_at(Square(file, color.home_rank))
            if (rook is not None and rook.type is PieceType.ROOK
                    and rook.color is color and not rook.has_moved):
                rights |= chess.BB_SQUARES[rook.position.chess_index]
    cb.castling_rights = rights

    if board.en_passant_target is not None:
        cb.ep_square = board.en_passant_target.chess_index
    cb.halfmove_clock = halfmove_clock
    cb.fullmove_number = fullmove_number
    return cb


def board_to_fen(board: Board, turn: Color, halfmove_clock: int = 0,
                 fullmove_number: int = 1) -> str:
    cb = to_chess_board(board, turn, halfmove_clock, fullmove_number)
    return cb.fen(en_passant="fen")
