"""Core rules components: pieces, board, rules engine, history, move selector and FEN."""

from .types import Color, PieceType, Square
from .piece import Piece
from .board import AppliedMove, Board
from .history import MoveHistory, MoveRecord, PieceSnapshot
from .rules import GameState, GameStatus, evaluate_status
from .ai import MoveSelector, ScoredMove
