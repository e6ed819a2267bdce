"""Move history with exact undo.

Records hold value snapshots only, never live ``Piece`` objects, so undoing a
move cannot alias board state.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from chess3d.core.board import Board
from chess3d.core.piece import Piece
from chess3d.core.types import Color, PieceType, Square

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PieceSnapshot:
    type: PieceType
    color: Color
    position: Square
    has_moved: bool

    @classmethod
    def of(cls, piece: Piece) -> "PieceSnapshot":
        return cls(piece.type, piece.color, piece.position, piece.has_moved)


@dataclass(frozen=True)
class MoveRecord:
    piece: PieceSnapshot                       # mover before the move
    origin: Square
    target: Square
    captured: Optional[PieceSnapshot]
    previous_player: Color
    en_passant_before: Optional[Square]
    double_step_pawn_before: Optional[Square]  # pawn that owned en_passant_before
    rook: Optional[PieceSnapshot] = None       # castling rook before the move
    rook_target: Optional[Square] = None

    @property
    def uci(self) -> str:
        return f"{self.origin.name}{self.target.name}"

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def is_en_passant(self) -> bool:
        return self.captured is not None and self.captured.position != self.target

    @property
    def is_castling(self) -> bool:
        return self.rook is not None


class MoveHistory:
    def __init__(self):
        self._records: List[MoveRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[MoveRecord]:
        return iter(self._records)

    @property
    def last(self) -> Optional[MoveRecord]:
        return self._records[-1] if self._records else None

    def clear(self):
        self._records.clear()

    def record(self, board: Board, piece: Piece, target, previous_player: Color) -> MoveRecord:
        """Snapshot everything needed to reverse ``piece -> target``. Call before executing."""
        target = Square(*target)
        captured = board.capture_for(piece, target)
        rook = board.castling_rook(piece, target)
        double_stepper = next((p for p in board.pieces if p.moved_two_squares), None)

        rook_target = None
        if rook is not None:
            step = 1 if target.file > piece.position.file else -1
            rook_target = Square(piece.position.file + step, piece.position.rank)

        entry = MoveRecord(
            piece=PieceSnapshot.of(piece),
            origin=piece.position,
            target=target,
            captured=PieceSnapshot.of(captured) if captured is not None else None,
            previous_player=previous_player,
            en_passant_before=board.en_passant_target,
            double_step_pawn_before=double_stepper.position if double_stepper else None,
            rook=PieceSnapshot.of(rook) if rook is not None else None,
            rook_target=rook_target,
        )
        self._records.append(entry)
        return entry

    def undo_last(self, board: Board) -> Optional[MoveRecord]:
        """Reverse the most recent move on ``board``. Returns the popped record."""
        if not self._records:
            logger.info("No moves to undo")
            return None

        entry = self._records[-1]
        moved = board.piece_at(entry.target)
        if moved is None or moved.type is not entry.piece.type or moved.color is not entry.piece.color:
            logger.error("Could not find piece to undo move %s", entry.uci)
            return None
        self._records.pop()

        board.place(moved, entry.origin)
        moved.has_moved = entry.piece.has_moved

        if entry.rook is not None:
            rook = board.piece_at(entry.rook_target)
            if rook is not None:
                board.place(rook, entry.rook.position)
                rook.has_moved = entry.rook.has_moved

        if entry.captured is not None:
            snap = entry.captured
            board.add_piece(snap.type, snap.color, snap.position, has_moved=snap.has_moved)

        board.en_passant_target = entry.en_passant_before
        for p in board.pieces:
            if p.type is PieceType.PAWN:
                p.moved_two_squares = False
        if entry.double_step_pawn_before is not None:
            pawn = board.piece_at(entry.double_step_pawn_before)
            if pawn is not None:
                pawn.moved_two_squares = True

        logger.debug("Move %s undone", entry.uci)
        return entry

    def halfmove_clock(self) -> int:
        """Plies since the last pawn move or capture."""
        count = 0
        for entry in reversed(self._records):
            if entry.piece.type is PieceType.PAWN or entry.captured is not None:
                break
            count += 1
        return count
