"""Exhaustive minimax with alpha-beta pruning for 3x3 tic-tac-toe."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .game import (
    AI,
    Board,
    Outcome,
    Player,
    TicTacToeGame,
    as_board,
    available_moves,
    evaluate,
    other,
    place,
)

logger = logging.getLogger(__name__)

NO_MOVE = -1
WIN_SCORE = 10


@dataclass
class SearchStats:
    nodes: int = 0


def score(
    board: Board,
    depth: int,
    ai_turn: bool,
    alpha: float,
    beta: float,
    player: Player = AI,
    stats: Optional[SearchStats] = None,
) -> int:
    """Minimax value of ``board`` from ``player``'s point of view.

    ``ai_turn`` is True when ``player`` (the maximiser) is to move. Wins are
    worth ``10 - depth`` and losses ``depth - 10`` so that faster wins and
    slower losses are preferred. Each child is a fresh board value; the
    board passed in is never modified.
    """
    if stats is not None:
        stats.nodes += 1

    outcome = evaluate(board)
    if outcome is Outcome.DRAW:
        return 0
    if outcome is not Outcome.UNDECIDED:
        won = AI if outcome is Outcome.AI_WIN else other(AI)
        return WIN_SCORE - depth if won == player else depth - WIN_SCORE

    opp = other(player)
    if ai_turn:
        value = -math.inf
        for idx in available_moves(board):
            child = place(board, idx, player)
            s = score(child, depth + 1, False, alpha, beta, player, stats)
            value = max(value, s)
            alpha = max(alpha, s)
            if beta <= alpha:
                break
    else:
        value = math.inf
        for idx in available_moves(board):
            child = place(board, idx, opp)
            s = score(child, depth + 1, True, alpha, beta, player, stats)
            value = min(value, s)
            beta = min(beta, s)
            if beta <= alpha:
                break
    return int(value)


def best_move(
    cells: Sequence[Optional[str]],
    player: Player = AI,
    stats: Optional[SearchStats] = None,
) -> int:
    """Optimal cell for ``player`` to mark next, or ``NO_MOVE`` on a full board.

    Cells are tried in increasing index order and only a strictly greater
    score replaces the current choice, so ties go to the lowest index.
    """
    board = as_board(cells)
    best_score = -math.inf
    move = NO_MOVE
    for idx in available_moves(board):
        s = score(place(board, idx, player), 0, False, -math.inf, math.inf, player, stats)
        if s > best_score:
            best_score, move = s, idx
    return move


@dataclass
class MinimaxAI:
    """Perfect-play opponent.

      - MinimaxAI(player="X")
      - choose(game) -> cell_index
    """

    player: Player = AI

    def choose(self, game: TicTacToeGame) -> int:
        if game.finished:
            raise ValueError("Game already finished")
        if game.current_player != self.player:
            raise ValueError("It is not this AI player's turn")

        stats = SearchStats()
        move = best_move(game.board, self.player, stats)
        if move == NO_MOVE:
            raise RuntimeError("No valid moves available")
        logger.debug(
            "%s chose cell %d after scoring %d positions", self.player, move, stats.nodes
        )
        return move
