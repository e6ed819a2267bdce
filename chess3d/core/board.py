"""Authoritative 8x8 board: piece ownership, move execution and tentative moves."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from chess3d.core.piece import Piece, squares_between
from chess3d.core.types import Color, PieceType, Square

logger = logging.getLogger(__name__)

BACK_RANK = [
    PieceType.ROOK, PieceType.KNIGHT, PieceType.BISHOP, PieceType.QUEEN,
    PieceType.KING, PieceType.BISHOP, PieceType.KNIGHT, PieceType.ROOK,
]


@dataclass
class AppliedMove:
    """What ``Board.apply_move`` actually did, for history and animation."""

    piece: Piece
    origin: Square
    target: Square
    captured: Optional[Piece] = None
    en_passant: bool = False
    double_step: bool = False
    rook: Optional[Piece] = None
    rook_origin: Optional[Square] = None
    rook_target: Optional[Square] = None

    @property
    def is_castling(self) -> bool:
        return self.rook is not None


class Board:
    def __init__(self):
        """Create an empty board. Use ``Board.standard()`` for the opening setup."""
        self.pieces: List[Piece] = []
        self._squares: Dict[Square, Piece] = {}
        self.en_passant_target: Optional[Square] = None

    @classmethod
    def standard(cls) -> "Board":
        board = cls()
        board.reset()
        return board

    def reset(self):
        """Reset to the initial position."""
        self.clear()
        for color in (Color.WHITE, Color.BLACK):
            home = color.home_rank
            for file, piece_type in enumerate(BACK_RANK):
                self.add_piece(piece_type, color, Square(file, home))
            for file in range(8):
                self.add_piece(PieceType.PAWN, color, Square(file, home + color.forward))

    def clear(self):
        self.pieces.clear()
        self._squares.clear()
        self.en_passant_target = None

    # ── Occupancy ───────────────────────────────────────────────

    def add_piece(self, piece_type: PieceType, color: Color, square, has_moved: bool = False) -> Piece:
        square = Square(*square)
        if not square.on_board:
            raise ValueError(f"square {square} is off the board")
        if square in self._squares:
            raise ValueError(f"square {square} is already occupied by {self._squares[square]!r}")
        piece = Piece(PieceType(piece_type), Color(color), square, has_moved=has_moved)
        self.pieces.append(piece)
        self._squares[square] = piece
        return piece

    def remove_piece(self, piece: Piece) -> int:
        """Take a piece off the board; returns its former index in ``pieces``."""
        index = self.pieces.index(piece)
        del self.pieces[index]
        if self._squares.get(piece.position) is piece:
            del self._squares[piece.position]
        return index

    def _insert_piece(self, piece: Piece, index: int):
        self.pieces.insert(index, piece)
        self._squares[piece.position] = piece

    def _relocate(self, piece: Piece, square: Square):
        if self._squares.get(piece.position) is piece:
            del self._squares[piece.position]
        piece.position = square
        self._squares[square] = piece

    def place(self, piece: Piece, square):
        """Move a piece without applying any rule (used to reverse moves)."""
        square = Square(*square)
        occupant = self._squares.get(square)
        if occupant is not None and occupant is not piece:
            raise ValueError(f"square {square} is already occupied by {occupant!r}")
        self._relocate(piece, square)

    def piece_at(self, square) -> Optional[Piece]:
        return self._squares.get(Square(*square))

    def pieces_of(self, color: Color) -> List[Piece]:
        return [p for p in self.pieces if p.color == color]

    def find_king(self, color: Color) -> Optional[Piece]:
        for piece in self.pieces:
            if piece.type is PieceType.KING and piece.color == color:
                return piece
        return None

    def path_is_clear(self, origin: Square, target: Square) -> bool:
        return all(sq not in self._squares for sq in squares_between(origin, target))

    def occupancy(self) -> Dict[str, str]:
        """Square name -> piece symbol, for drawing."""
        return {sq.name: piece.symbol for sq, piece in sorted(self._squares.items())}

    # ── Special-move lookups ────────────────────────────────────

    def castling_rook(self, king: Piece, target: Square) -> Optional[Piece]:
        """The rook a two-file king move would castle with, if the shape allows it."""
        if king.type is not PieceType.KING or king.has_moved:
            return None
        dx = target.file - king.position.file
        if target.rank != king.position.rank or abs(dx) != 2:
            return None
        rook = self.piece_at(Square(7 if dx > 0 else 0, king.position.rank))
        if (rook is None or rook.type is not PieceType.ROOK
                or rook.color != king.color or rook.has_moved):
            return None
        if not self.path_is_clear(king.position, rook.position):
            return None
        return rook

    def en_passant_victim(self, piece: Piece, target: Square) -> Optional[Piece]:
        """The pawn an en-passant move onto ``target`` would remove."""
        if piece.type is not PieceType.PAWN or target.file == piece.position.file:
            return None
        if self.en_passant_target is None or target != self.en_passant_target:
            return None
        if self.piece_at(target) is not None:
            return None
        victim = self.piece_at(Square(target.file, piece.position.rank))
        if victim is None or victim.type is not PieceType.PAWN or victim.color == piece.color:
            return None
        return victim

    def capture_for(self, piece: Piece, target: Square) -> Optional[Piece]:
        """Piece removed by moving ``piece`` to ``target`` (ordinary or en passant)."""
        return self.piece_at(target) or self.en_passant_victim(piece, target)

    # ── Move execution ──────────────────────────────────────────

    def apply_move(self, piece: Piece, target) -> AppliedMove:
        """Execute a move, including captures, en passant and castling.

        Legality is the caller's job; turn order and game end are too.
        """
        target = Square(*target)
        origin = piece.position
        result = AppliedMove(piece=piece, origin=origin, target=target)

        victim = self.en_passant_victim(piece, target)
        rook = self.castling_rook(piece, target)

        self.en_passant_target = None
        for p in self.pieces:
            if p.type is PieceType.PAWN:
                p.moved_two_squares = False

        if piece.type is PieceType.PAWN and abs(target.rank - origin.rank) == 2:
            self.en_passant_target = Square(origin.file, (origin.rank + target.rank) // 2)
            piece.moved_two_squares = True
            result.double_step = True

        if victim is not None:
            logger.debug("En passant capture of %r", victim)
            self.remove_piece(victim)
            result.captured = victim
            result.en_passant = True

        occupant = self.piece_at(target)
        if occupant is not None:
            self.remove_piece(occupant)
            result.captured = occupant

        self._relocate(piece, target)
        piece.has_moved = True

        if rook is not None:
            result.rook = rook
            result.rook_origin = rook.position
            result.rook_target = Square(origin.file + (1 if target.file > origin.file else -1), origin.rank)
            self._relocate(rook, result.rook_target)
            rook.has_moved = True

        return result

    @contextmanager
    def simulate(self, piece: Piece, target) -> Iterator[Optional[Piece]]:
        """Tentatively play ``piece`` to ``target``; the board is restored on exit.

        Yields the captured piece (if any). Restoration happens even when the
        body raises, and a captured piece returns to its former list index.
        """
        target = Square(*target)
        origin = piece.position
        victim = self.capture_for(piece, target)
        rook = self.castling_rook(piece, target)
        rook_origin = rook.position if rook is not None else None
        index = self.remove_piece(victim) if victim is not None else None
        self._relocate(piece, target)
        if rook is not None:
            step = 1 if target.file > origin.file else -1
            self._relocate(rook, Square(origin.file + step, origin.rank))
        try:
            yield victim
        finally:
            if rook is not None:
                self._relocate(rook, rook_origin)
            self._relocate(piece, origin)
            if victim is not None:
                self._insert_piece(victim, index)

    @contextmanager
    def lifted(self, piece: Piece) -> Iterator[Piece]:
        """Temporarily take ``piece`` off the board."""
        index = self.remove_piece(piece)
        try:
            yield piece
        finally:
            self._insert_piece(piece, index)

    # ── Comparison / display ────────────────────────────────────

    def state_key(self):
        """Hashable summary: pieces (type, color, square, has_moved) and en-passant target."""
        pieces = frozenset((p.type, p.color, p.position, p.has_moved) for p in self.pieces)
        return pieces, self.en_passant_target

    def __str__(self) -> str:
        rows = []
        for rank in range(7, -1, -1):
            row = []
            for file in range(8):
                piece = self._squares.get(Square(file, rank))
                row.append(piece.symbol if piece else ".")
            rows.append(" ".join(row))
        return "\n".join(rows)
