"""Value types shared by the rules engine: colors, piece types and squares."""

from enum import Enum
from typing import NamedTuple, Optional

import chess


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def forward(self) -> int:
        """Rank step of this color's pawns."""
        return 1 if self is Color.WHITE else -1

    @property
    def home_rank(self) -> int:
        return 0 if self is Color.WHITE else 7

    @property
    def label(self) -> str:
        return self.value.capitalize()


class PieceType(str, Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"

    @property
    def symbol(self) -> str:
        return "n" if self is PieceType.KNIGHT else self.value[0]


class Square(NamedTuple):
    """Board coordinate. file 0 is the a-file, rank 0 is White's back rank."""

    file: int
    rank: int

    @property
    def on_board(self) -> bool:
        return 0 <= self.file <= 7 and 0 <= self.rank <= 7

    @property
    def name(self) -> str:
        return chess.square_name(self.chess_index)

    @property
    def chess_index(self) -> int:
        """python-chess square index (a1 = 0, h8 = 63)."""
        return chess.square(self.file, self.rank)

    @property
    def is_light(self) -> bool:
        return (self.file + self.rank) % 2 == 1

    def offset(self, dfile: int, drank: int) -> "Square":
        return Square(self.file + dfile, self.rank + drank)

    @classmethod
    def from_name(cls, name: str) -> "Square":
        """Parse an algebraic square name such as ``"e4"``. Raises ValueError."""
        index = chess.parse_square(name.strip().lower())
        return cls(chess.square_file(index), chess.square_rank(index))

    @classmethod
    def from_index(cls, index: int) -> "Square":
        return cls(chess.square_file(index), chess.square_rank(index))

    def __str__(self) -> str:
        return self.name if self.on_board else f"({self.file},{self.rank})"


ALL_SQUARES = [Square(f, r) for r in range(8) for f in range(8)]


def coerce_square(value) -> Optional[Square]:
    """Accept a Square, an (file, rank) pair or an algebraic name.

    Bad names raise ValueError; pairs that are not integers give None.
    """
    if isinstance(value, Square):
        return value
    if isinstance(value, str):
        return Square.from_name(value)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        try:
            return Square(int(value[0]), int(value[1]))
        except (TypeError, ValueError):
            return None
    return None
