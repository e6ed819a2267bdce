"""One-ply heuristic move selector for the computer opponent.

Every legal move is scored with a static heuristic and one of the best few is
picked at random, so the opponent is playable rather than optimal. The random
source is injected, which makes choices reproducible under a fixed seed.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from chess3d.config import CONFIG, AIConfig
from chess3d.core.board import Board
from chess3d.core.piece import BISHOP_DIRECTIONS, Piece
from chess3d.core.rules import all_legal_moves, is_king_in_check
from chess3d.core.types import Color, PieceType, Square

logger = logging.getLogger(__name__)

CENTER = 3.5


@dataclass
class ScoredMove:
    piece: Piece
    origin: Square
    target: Square
    score: float

    @property
    def uci(self) -> str:
        return f"{self.origin.name}{self.target.name}"


def center_distance(square: Square) -> float:
    return abs(square.file - CENTER) + abs(square.rank - CENTER)


class MoveSelector:
    def __init__(self, config: Optional[AIConfig] = None, rng: Optional[random.Random] = None):
        self.cfg = config or CONFIG.ai
        self.rng = rng or random.Random(self.cfg.seed)

    def value(self, piece_type: PieceType) -> int:
        return self.cfg.piece_values.get(piece_type.name, 0)

    # ── Selection ───────────────────────────────────────────────

    def candidate_moves(self, board: Board, color: Color) -> List[ScoredMove]:
        """All legal moves for ``color``, best first."""
        in_check = is_king_in_check(board, color)
        scored = [
            ScoredMove(piece, piece.position, target, self.score_move(board, piece, target, in_check))
            for piece, target in all_legal_moves(board, color)
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored

    def select_move(self, board: Board, color: Color) -> Optional[ScoredMove]:
        """Pick a move for ``color`` or None when it has no legal move."""
        moves = self.candidate_moves(board, color)
        if not moves:
            logger.info("No legal moves for %s", color.value)
            return None

        if logger.isEnabledFor(logging.DEBUG):
            top = ", ".join(f"{m.piece.type.value} {m.uci} {m.score:.2f}" for m in moves[:3])
            logger.debug("Computer top moves: %s", top)

        in_check = is_king_in_check(board, color)
        if in_check:
            best_p, pool = self.cfg.best_move_probability_in_check, self.cfg.top_pool_size_in_check
        else:
            best_p, pool = self.cfg.best_move_probability, self.cfg.top_pool_size

        if self.rng.random() < best_p:
            return moves[0]
        return moves[self.rng.randrange(max(1, min(pool, len(moves))))]

    # ── Scoring ─────────────────────────────────────────────────

    def score_move(self, board: Board, piece: Piece, target: Square, in_check: bool) -> float:
        cfg = self.cfg
        score = 0.0

        captured = board.capture_for(piece, target)
        if captured is not None:
            score += self.value(captured.type) * cfg.capture_multiplier

        if in_check and piece.type is PieceType.KING:
            score += cfg.check_king_move_bonus
            edge = min(target.file, target.rank, 7 - target.file, 7 - target.rank)
            if edge == 0:
                score -= cfg.edge_penalty
            else:
                score += cfg.edge_proximity_factor / edge

        if in_check and piece.type is not PieceType.KING:
            with board.simulate(piece, target):
                if not is_king_in_check(board, piece.color):
                    score += cfg.escape_check_bonus

        if not in_check and piece.type is not PieceType.KING:
            # pinned or shielding pieces
            with board.lifted(piece):
                if is_king_in_check(board, piece.color):
                    score -= cfg.expose_king_penalty

        distance = center_distance(target)
        score -= distance
        if piece.type is PieceType.KNIGHT:
            score -= distance * cfg.knight_center_factor

        if piece.type is PieceType.BISHOP:
            score += self._diagonal_reach(board, target) * cfg.bishop_mobility_weight

        if piece.type is PieceType.ROOK:
            own_pawn_on_file = any(
                p.type is PieceType.PAWN and p.color == piece.color and p.position.file == target.file
                for p in board.pieces
            )
            if not own_pawn_on_file:
                score += cfg.rook_open_file_bonus

        if piece.type is PieceType.QUEEN:
            if not self.is_square_protected(board, target, piece.color, exclude=piece):
                score -= cfg.queen_unprotected_penalty

        if piece.type is PieceType.PAWN:
            score += self._pawn_terms(board, piece, target)

        if piece.type is PieceType.KING and not self.is_endgame(board):
            score += distance * cfg.king_center_factor

        score += self.rng.random() * cfg.random_jitter
        return score

    def _diagonal_reach(self, board: Board, origin: Square) -> int:
        """Diagonal squares visible from ``origin``, counting the first blocker."""
        count = 0
        for dx, dy in BISHOP_DIRECTIONS:
            square = origin.offset(dx, dy)
            while square.on_board:
                count += 1
                occupant = board.piece_at(square)
                if occupant is not None:
                    break
                square = square.offset(dx, dy)
        return count

    def _pawn_terms(self, board: Board, pawn: Piece, target: Square) -> float:
        cfg = self.cfg
        advanced = target.rank if pawn.color is Color.WHITE else 7 - target.rank
        score = advanced * cfg.pawn_advance_weight
        if advanced >= 6:
            score += cfg.pawn_near_promotion_bonus
        for dx in (-1, 1):
            square = target.offset(dx, pawn.color.forward)
            if not square.on_board:
                continue
            threatened = board.piece_at(square)
            if threatened is not None and threatened.color != pawn.color:
                score += self.value(threatened.type) * cfg.pawn_threat_factor
        return score

    # ── Position helpers ────────────────────────────────────────

    def is_endgame(self, board: Board) -> bool:
        """Both sides at or below the material threshold, or a queen is gone."""
        material = {Color.WHITE: 0, Color.BLACK: 0}
        queens = {Color.WHITE: False, Color.BLACK: False}
        for p in board.pieces:
            if p.type is PieceType.KING:
                continue
            material[p.color] += self.value(p.type)
            if p.type is PieceType.QUEEN:
                queens[p.color] = True
        both_low = all(m <= self.cfg.endgame_material for m in material.values())
        return both_low or not all(queens.values())

    def is_square_protected(self, board: Board, square: Square, color: Color,
                            exclude: Optional[Piece] = None) -> bool:
        for protector in board.pieces_of(color):
            if protector is exclude or protector.position == square:
                continue
            if protector.attacks(square, board):
                return True
        return False
