"""Game facade: turn protocol, status evaluation, history, events and the computer player.

The UI layer talks to ``Game`` only. Every mutating call returns a result
object and publishes a ``GameEvent`` to subscribers, so the core never reaches
into presentation code.
"""

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from chess3d.config import CONFIG, Config
from chess3d.core.ai import MoveSelector
from chess3d.core.board import Board
from chess3d.core.fen import board_from_fen, board_to_fen
from chess3d.core.history import MoveHistory, MoveRecord, PieceSnapshot
from chess3d.core.piece import Piece
from chess3d.core.rules import GameStatus, evaluate_status, is_legal_move, legal_moves_for
from chess3d.core.types import Color, Square, coerce_square

logger = logging.getLogger(__name__)

FRIEND = "friend"
COMPUTER = "computer"


@dataclass
class MoveResult:
    accepted: bool
    reason: str = ""
    piece: Optional[PieceSnapshot] = None
    origin: Optional[Square] = None
    target: Optional[Square] = None
    captured: Optional[PieceSnapshot] = None
    en_passant: bool = False
    rook_origin: Optional[Square] = None
    rook_target: Optional[Square] = None
    status: Optional[GameStatus] = None

    @property
    def uci(self) -> Optional[str]:
        if self.origin is None or self.target is None:
            return None
        return f"{self.origin.name}{self.target.name}"

    def to_dict(self) -> Dict:
        return {
            "accepted": self.accepted,
            "reason": self.reason,
            "move": self.uci,
            "piece": _snapshot_dict(self.piece),
            "captured": _snapshot_dict(self.captured),
            "en_passant": self.en_passant,
            "castling": None if self.rook_origin is None else {
                "rook_from": self.rook_origin.name,
                "rook_to": self.rook_target.name,
            },
        }


@dataclass
class GameEvent:
    kind: str  # "move", "undo", "reset", "game_over"
    status: GameStatus
    move: Optional[MoveResult] = None
    undone: List[MoveRecord] = field(default_factory=list)


def _snapshot_dict(snap: Optional[PieceSnapshot]) -> Optional[Dict]:
    if snap is None:
        return None
    return {"type": snap.type.value, "color": snap.color.value, "square": snap.position.name}


def _rejected(reason: str) -> MoveResult:
    logger.debug("Move rejected: %s", reason)
    return MoveResult(accepted=False, reason=reason)


class Game:
    def __init__(self, mode: Optional[str] = None, computer_color: Optional[str] = None,
                 config: Optional[Config] = None, seed: Optional[int] = None,
                 selector: Optional[MoveSelector] = None, auto_reply: bool = False):
        self.cfg = config or CONFIG
        self.mode = mode or self.cfg.game.mode
        if self.mode not in (FRIEND, COMPUTER):
            raise ValueError(f"unknown game mode: {self.mode}")
        self.computer_color = Color(computer_color or self.cfg.game.computer_color)
        if selector is None:
            rng = random.Random(seed if seed is not None else self.cfg.ai.seed)
            selector = MoveSelector(self.cfg.ai, rng)
        self.selector = selector
        self.auto_reply = auto_reply

        self.board = Board()
        self.history = MoveHistory()
        self.captured_pieces: List[PieceSnapshot] = []
        self.last_move: Optional[MoveResult] = None
        self.current_player = Color.WHITE
        self.game_over = False
        self.result_message = ""
        self.status: Optional[GameStatus] = None
        self.is_computer_thinking = False

        self._listeners: List[Callable[[GameEvent], None]] = []
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._start_color = Color.WHITE
        self._start_fullmove = 1
        self._start_halfmove = 0

        self.new_game()

    # ── Lifecycle ───────────────────────────────────────────────

    def new_game(self, mode: Optional[str] = None):
        """Start from the standard position, optionally switching mode."""
        with self._lock:
            if mode is not None:
                if mode not in (FRIEND, COMPUTER):
                    raise ValueError(f"unknown game mode: {mode}")
                self.mode = mode
            self.cancel_computer_move()
            self.board.reset()
            self._restart(Color.WHITE)
            self._publish(GameEvent("reset", self.status))

    def reset(self):
        self.new_game()

    def load_fen(self, fen: str):
        """Replace the position. Raises ValueError for invalid FEN."""
        board, turn = board_from_fen(fen)
        fields = fen.split()
        with self._lock:
            self.cancel_computer_move()
            self.board = board
            self._restart(turn)
            if len(fields) >= 6:
                self._start_halfmove = int(fields[4])
                self._start_fullmove = int(fields[5])
            self._publish(GameEvent("reset", self.status))

    def _restart(self, turn: Color):
        self.history.clear()
        self.captured_pieces = []
        self.last_move = None
        self.current_player = turn
        self.is_computer_thinking = False
        self._start_color = turn
        self._start_fullmove = 1
        self._start_halfmove = 0
        self._refresh_status()

    def fen(self) -> str:
        with self._lock:
            plies = len(self.history)
            offset = 1 if self._start_color is Color.BLACK else 0
            fullmove = self._start_fullmove + (plies + offset) // 2
            halfmove = self.history.halfmove_clock()
            if halfmove == plies:
                halfmove += self._start_halfmove
            return board_to_fen(self.board, self.current_player, halfmove, fullmove)

    # ── Events ──────────────────────────────────────────────────

    def subscribe(self, listener: Callable[[GameEvent], None]) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: GameEvent):
        for listener in list(self._listeners):
            listener(event)

    def _refresh_status(self) -> GameStatus:
        self.status = evaluate_status(self.board, self.current_player)
        self.game_over = self.status.is_over
        self.result_message = self.status.message
        return self.status

    # ── Queries ─────────────────────────────────────────────────

    def _resolve_piece(self, origin) -> Optional[Piece]:
        if isinstance(origin, Piece):
            return origin if any(p is origin for p in self.board.pieces) else None
        square = coerce_square(origin)
        return self.board.piece_at(square) if square is not None else None

    def legal_moves(self, origin) -> List[Square]:
        """Legal targets for the piece on (or given as) ``origin``, for highlighting."""
        with self._lock:
            try:
                piece = self._resolve_piece(origin)
            except ValueError:
                return []
            if piece is None:
                return []
            return legal_moves_for(self.board, piece)

    def captured_by(self, color) -> List[PieceSnapshot]:
        """Pieces ``color`` has taken from the opponent."""
        color = Color(color)
        return [p for p in self.captured_pieces if p.color is color.opponent]

    def occupancy(self) -> Dict[str, str]:
        return self.board.occupancy()

    def snapshot(self) -> Dict:
        with self._lock:
            return {
                "fen": self.fen(),
                "turn": self.current_player.value,
                "mode": self.mode,
                "board": self.occupancy(),
                "status": self.status.state.value,
                "message": self.result_message,
                "in_check": {c.value: v for c, v in self.status.in_check.items()},
                "is_game_over": self.game_over,
                "winner": self.status.winner.value if self.status.winner else None,
                "captured": {
                    c.value: [p.type.value for p in self.captured_by(c)]
                    for c in (Color.WHITE, Color.BLACK)
                },
                "last_move": self.last_move.to_dict() if self.last_move else None,
                "history": [r.uci for r in self.history],
            }

    # ── Moves ───────────────────────────────────────────────────

    def submit_move(self, origin, target) -> MoveResult:
        """Validate and play a human move. Illegal input is rejected, never raised."""
        with self._lock:
            if self.game_over:
                return _rejected("Game is over")
            if self.mode == COMPUTER and self.current_player == self.computer_color:
                return _rejected("Computer is thinking")
            try:
                piece = self._resolve_piece(origin)
                target = coerce_square(target)
            except ValueError as e:
                return _rejected(f"Invalid square: {e}")
            if piece is None:
                return _rejected(f"No piece on {origin}")
            if target is None or not target.on_board:
                return _rejected(f"Invalid target {target}")
            if piece.color != self.current_player:
                return _rejected(f"It is {self.current_player.value}'s turn")
            if not is_legal_move(self.board, piece, target):
                return _rejected(f"Illegal move: {piece.position}{target}")

            result = self._play(piece, target)

        if (self.auto_reply and self.mode == COMPUTER and not self.game_over
                and self.current_player == self.computer_color):
            self.schedule_computer_move()
        return result

    def _play(self, piece: Piece, target: Square) -> MoveResult:
        entry = self.history.record(self.board, piece, target, self.current_player)
        applied = self.board.apply_move(piece, target)
        if entry.captured is not None:
            self.captured_pieces.append(entry.captured)

        self.current_player = self.current_player.opponent
        status = self._refresh_status()

        result = MoveResult(
            accepted=True,
            piece=entry.piece,
            origin=applied.origin,
            target=applied.target,
            captured=entry.captured,
            en_passant=applied.en_passant,
            rook_origin=applied.rook_origin,
            rook_target=applied.rook_target,
            status=status,
        )
        self.last_move = result
        logger.debug("%s played %s", entry.previous_player.value, result.uci)
        self._publish(GameEvent("move", status, move=result))
        if status.is_over:
            logger.info("Game over: %s", status.message)
            self._publish(GameEvent("game_over", status, move=result))
        return result

    def undo(self) -> bool:
        """Take back a ply; against the computer, keep going until the human is to move.

        When the computer opened the game, undoing back to the start leaves the
        computer to move; with ``auto_reply`` its move is scheduled again.
        """
        self.cancel_computer_move()
        with self._lock:
            if not len(self.history):
                logger.info("No moves to undo")
                return False
            undone = []
            entry = self._undo_single()
            if entry is None:
                return False
            undone.append(entry)
            if self.mode == COMPUTER:
                while self.current_player == self.computer_color and len(self.history):
                    entry = self._undo_single()
                    if entry is None:
                        break
                    undone.append(entry)
            self._refresh_status()
            self._publish(GameEvent("undo", self.status, undone=undone))
            computer_to_move = (self.mode == COMPUTER and not self.game_over
                                and self.current_player == self.computer_color)

        if self.auto_reply and computer_to_move:
            self.schedule_computer_move()
        return True

    def _undo_single(self) -> Optional[MoveRecord]:
        entry = self.history.undo_last(self.board)
        if entry is None:
            return None
        self.current_player = entry.previous_player
        if entry.captured is not None:
            for i in range(len(self.captured_pieces) - 1, -1, -1):
                snap = self.captured_pieces[i]
                if snap.type is entry.captured.type and snap.color is entry.captured.color:
                    del self.captured_pieces[i]
                    break
        self.last_move = None
        return entry

    # ── Computer player ─────────────────────────────────────────

    def request_automated_move(self, color=None) -> Optional[MoveResult]:
        """Let the selector play for ``color`` (default: side to move).

        Returns None when the game is over, it is not ``color``'s turn, or the
        side has no legal move; in the last case the status is re-evaluated,
        which is how a checkmate or stalemate of the computer is detected.
        """
        with self._lock:
            if color is None:
                color = self.current_player
            else:
                try:
                    color = Color(color)
                except ValueError:
                    logger.warning("Automated move requested for unknown color %r", color)
                    return None
            if self.game_over:
                return None
            if color != self.current_player:
                logger.warning("Automated move requested for %s on %s's turn",
                               color.value, self.current_player.value)
                return None
            choice = self.selector.select_move(self.board, color)
            if choice is None:
                status = self._refresh_status()
                if status.is_over:
                    self._publish(GameEvent("game_over", status))
                return None
            return self._play(choice.piece, choice.target)

    def schedule_computer_move(self, delay: Optional[float] = None,
                               callback: Optional[Callable[[Optional[MoveResult]], None]] = None
                               ) -> threading.Thread:
        """Play the computer's move after a cosmetic delay on a background thread."""
        with self._lock:
            if self._thread and self._thread.is_alive() and not self._stop_event.is_set():
                return self._thread
            stop_event = threading.Event()
            self._stop_event = stop_event
            self.is_computer_thinking = True
            wait = self.cfg.ai.think_delay if delay is None else delay

            def worker():
                result = None
                try:
                    if stop_event.wait(wait):
                        return
                    with self._lock:
                        if (not stop_event.is_set() and not self.game_over
                                and self.current_player == self.computer_color):
                            result = self.request_automated_move(self.computer_color)
                finally:
                    if self._stop_event is stop_event:
                        self.is_computer_thinking = False
                if callback:
                    callback(result)

            self._thread = threading.Thread(target=worker, daemon=True)
            self._thread.start()
            return self._thread

    def cancel_computer_move(self):
        self._stop_event.set()
        self.is_computer_thinking = False
