"""nxo package exposing the N×N rules engine, the AI opponent, and the game service."""

from .ai import Difficulty, MoveSelector, select_move
from .api import app
from .game import (
    Board,
    Game,
    IllegalMove,
    InvalidConfiguration,
    Outcome,
    Player,
    apply_move,
    is_terminal,
    new_board,
    winner_of,
)

__all__ = [
    "Board",
    "Difficulty",
    "Game",
    "IllegalMove",
    "InvalidConfiguration",
    "MoveSelector",
    "Outcome",
    "Player",
    "app",
    "apply_move",
    "is_terminal",
    "new_board",
    "select_move",
    "winner_of",
]
