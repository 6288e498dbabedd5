"""PerfectXO package exposing game rules, the minimax AI, and the web application."""

from .ai import MinimaxAI, best_move
from .game import Outcome, Phase, TicTacToeGame, evaluate
from .ui import app

__all__ = [
    "MinimaxAI",
    "Outcome",
    "Phase",
    "TicTacToeGame",
    "app",
    "best_move",
    "evaluate",
]
