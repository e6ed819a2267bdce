"""Chess pieces and their movement geometry.

A piece only knows how it moves. ``is_legal_shape`` answers "can this piece
travel from its square to ``target`` given the current occupancy", ignoring
whether the move would expose its own king; that check lives in
``chess3d.core.rules``.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

from chess3d.core.types import Color, PieceType, Square

if TYPE_CHECKING:
    from chess3d.core.board import Board

ROOK_DIRECTIONS = [(1, 0), (-1, 0), (0, 1), (0, -1)]
BISHOP_DIRECTIONS = [(1, 1), (1, -1), (-1, 1), (-1, -1)]
KNIGHT_OFFSETS = [(1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2)]
KING_OFFSETS = ROOK_DIRECTIONS + BISHOP_DIRECTIONS


def _sign(n: int) -> int:
    return (n > 0) - (n < 0)


@dataclass(eq=False)
class Piece:
    type: PieceType
    color: Color
    position: Square
    has_moved: bool = False
    moved_two_squares: bool = False  # pawn made the most recent double step

    @property
    def symbol(self) -> str:
        s = self.type.symbol
        return s.upper() if self.color is Color.WHITE else s

    def __repr__(self) -> str:
        return f"<{self.color.value} {self.type.value} {self.position}>"

    # ── Shape legality ──────────────────────────────────────────

    def is_legal_shape(self, target: Square, board: "Board") -> bool:
        """Movement geometry and path blocking only (no king safety)."""
        target = Square(*target)
        if not target.on_board or target == self.position:
            return False
        occupant = board.piece_at(target)
        if occupant is not None and occupant.color == self.color:
            return False

        if self.type is PieceType.PAWN:
            return self._pawn_shape(target, board)
        if self.type is PieceType.KNIGHT:
            return self._knight_shape(target)
        if self.type is PieceType.BISHOP:
            return self._bishop_shape(target, board)
        if self.type is PieceType.ROOK:
            return self._rook_shape(target, board)
        if self.type is PieceType.QUEEN:
            return self._rook_shape(target, board) or self._bishop_shape(target, board)
        if self.type is PieceType.KING:
            return self._king_shape(target, board)
        return False

    def _pawn_shape(self, target: Square, board: "Board") -> bool:
        dx = target.file - self.position.file
        dy = target.rank - self.position.rank
        step = self.color.forward
        occupant = board.piece_at(target)

        if dx == 0 and dy == step:
            return occupant is None
        if dx == 0 and dy == 2 * step and not self.has_moved:
            between = self.position.offset(0, step)
            return occupant is None and board.piece_at(between) is None
        if abs(dx) == 1 and dy == step:
            if occupant is not None:
                return occupant.color != self.color
            # en passant: diagonal step onto the square the enemy pawn skipped
            if board.en_passant_target != target:
                return False
            victim = board.piece_at(Square(target.file, self.position.rank))
            return (victim is not None and victim.type is PieceType.PAWN
                    and victim.color != self.color)
        return False

    def _knight_shape(self, target: Square) -> bool:
        dx = abs(target.file - self.position.file)
        dy = abs(target.rank - self.position.rank)
        return (dx, dy) in ((1, 2), (2, 1))

    def _rook_shape(self, target: Square, board: "Board") -> bool:
        dx = target.file - self.position.file
        dy = target.rank - self.position.rank
        if dx != 0 and dy != 0:
            return False
        return board.path_is_clear(self.position, target)

    def _bishop_shape(self, target: Square, board: "Board") -> bool:
        dx = target.file - self.position.file
        dy = target.rank - self.position.rank
        if dx == 0 or abs(dx) != abs(dy):
            return False
        return board.path_is_clear(self.position, target)

    def _king_shape(self, target: Square, board: "Board") -> bool:
        dx = target.file - self.position.file
        dy = target.rank - self.position.rank
        if abs(dx) <= 1 and abs(dy) <= 1:
            return True
        return dy == 0 and abs(dx) == 2 and board.castling_rook(self, target) is not None

    # ── Attack geometry ─────────────────────────────────────────

    def attacks(self, square: Square, board: "Board") -> bool:
        """Would this piece capture on ``square`` if an enemy stood there."""
        square = Square(*square)
        if not square.on_board or square == self.position:
            return False
        dx = square.file - self.position.file
        dy = square.rank - self.position.rank

        if self.type is PieceType.PAWN:
            return abs(dx) == 1 and dy == self.color.forward
        if self.type is PieceType.KNIGHT:
            return self._knight_shape(square)
        if self.type is PieceType.KING:
            return abs(dx) <= 1 and abs(dy) <= 1
        straight = dx == 0 or dy == 0
        diagonal = abs(dx) == abs(dy)
        if self.type is PieceType.ROOK and not straight:
            return False
        if self.type is PieceType.BISHOP and not diagonal:
            return False
        if self.type is PieceType.QUEEN and not (straight or diagonal):
            return False
        return board.path_is_clear(self.position, square)

    def candidate_targets(self) -> Iterator[Square]:
        """Every on-board square other than the piece's own."""
        for rank in range(8):
            for file in range(8):
                square = Square(file, rank)
                if square != self.position:
                    yield square


def squares_between(origin: Square, target: Square) -> Iterator[Square]:
    """Squares strictly between two squares on a shared line or diagonal."""
    dx = target.file - origin.file
    dy = target.rank - origin.rank
    if not (dx == 0 or dy == 0 or abs(dx) == abs(dy)):
        return
    step_x, step_y = _sign(dx), _sign(dy)
    current = origin.offset(step_x, step_y)
    while current != target:
        yield current
        current = current.offset(step_x, step_y)
