import argparse
import logging

import chess

from chess3d.config import CONFIG
from chess3d.core.types import Square
from chess3d.game import COMPUTER, FRIEND, Game


def parse_uci(text: str):
    """Return (origin, target) squares for a UCI string, or None."""
    try:
        move = chess.Move.from_uci(text.strip().lower())
    except ValueError:
        return None
    return Square.from_index(move.from_square), Square.from_index(move.to_square)


def main(argv=None, input_fn=input, output_fn=print):
    parser = argparse.ArgumentParser(description="Play chess in the terminal")
    parser.add_argument("--mode", choices=[FRIEND, COMPUTER], default=COMPUTER)
    parser.add_argument("--computer-color", choices=["white", "black"],
                        default=CONFIG.game.computer_color)
    parser.add_argument("--seed", type=int, default=CONFIG.ai.seed)
    args = parser.parse_args(argv)

    logging.basicConfig(level=CONFIG.log_level)
    game = Game(mode=args.mode, computer_color=args.computer_color, seed=args.seed)

    while not game.game_over:
        output_fn(game.board)
        output_fn("----------------------------")
        output_fn(game.result_message)

        if game.mode == COMPUTER and game.current_player == game.computer_color:
            result = game.request_automated_move()
            if result is not None:
                output_fn(f"Computer plays: {result.uci}")
            continue

        user_move = input_fn("Enter your move (uci format, e2e4), 'undo' or 'quit': ").strip()
        if user_move == "quit":
            break
        if user_move == "undo":
            if not game.undo():
                output_fn("Nothing to undo.")
            continue
        squares = parse_uci(user_move)
        if squares is None:
            output_fn("Could not read that move, try again.")
            continue
        result = game.submit_move(*squares)
        if not result.accepted:
            output_fn(f"{result.reason}, try again.")

    output_fn("Game Over")
    output_fn(f"Result: {game.result_message}")
    return game


if __name__ == "__main__":
    main()
