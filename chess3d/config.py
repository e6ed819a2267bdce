# chess3d/config.py
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import os
import tomllib  # python >=3.11

# Material values used by the move heuristic (pawn units)
PIECE_VALUES = {
    "PAWN": 1,
    "KNIGHT": 3,
    "BISHOP": 3,
    "ROOK": 5,
    "QUEEN": 9,
    "KING": 100,
}

@dataclass
class AIConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    capture_multiplier: float = 10.0
    check_king_move_bonus: float = 15.0
    edge_penalty: float = 3.0           # king stepping onto the very edge while in check
    edge_proximity_factor: float = 1.5  # divided by the edge distance
    escape_check_bonus: float = 20.0
    expose_king_penalty: float = 15.0
    knight_center_factor: float = 0.5
    bishop_mobility_weight: float = 0.2
    rook_open_file_bonus: float = 0.5
    queen_unprotected_penalty: float = 5.0
    pawn_advance_weight: float = 0.5
    pawn_near_promotion_bonus: float = 5.0
    pawn_threat_factor: float = 0.5
    king_center_factor: float = 0.5
    endgame_material: int = 12
    random_jitter: float = 0.5
    # probability of playing the top-scored move, otherwise pick from the top pool
    best_move_probability: float = 0.7
    best_move_probability_in_check: float = 0.9
    top_pool_size: int = 3
    top_pool_size_in_check: int = 2
    seed: Optional[int] = None  # None means nondeterministic
    think_delay: float = 1.0    # seconds, cosmetic only

@dataclass
class GameConfig:
    mode: str = "friend"            # "friend" or "computer"
    computer_color: str = "black"

@dataclass
class UIConfig:
    engine_name: str = "Chess3D"
    engine_author: str = "Chess3D developers"
    api_port: int = 8000

@dataclass
class Config:
    ai: AIConfig = field(default_factory=AIConfig)
    game: GameConfig = field(default_factory=GameConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("ai", "game", "ui"):
            if section in raw:
                target = getattr(cfg, section)
                for k, v in raw[section].items():
                    if hasattr(target, k):
                        setattr(target, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"]).upper()
        return cfg

# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("CHESS3D_CONFIG_TOML", "config.toml"))
# allow env override of the AI seed for reproducible sessions
try:
    override_seed = os.environ.get("CHESS3D_AI_SEED")
    if override_seed:
        CONFIG.ai.seed = int(override_seed)
except ValueError:
    logging.getLogger(__name__).warning("Ignoring non-integer CHESS3D_AI_SEED=%r", override_seed)
