"""Core rules, terminal-state evaluation and the game state machine for PerfectXO."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Player = str  # "X" or "O"
Board = Tuple[str, ...]

AI: Player = "X"
OPPONENT: Player = "O"
EMPTY = " "

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

EMPTY_BOARD: Board = (EMPTY,) * 9


class Outcome(str, Enum):
    AI_WIN = "ai-win"
    OPPONENT_WIN = "opponent-win"
    DRAW = "draw"
    UNDECIDED = "undecided"


class Phase(str, Enum):
    AI_TO_MOVE = "ai-to-move"
    OPPONENT_TO_MOVE = "opponent-to-move"
    AI_WON = "ai-won"
    OPPONENT_WON = "opponent-won"
    DRAW = "draw"


_TERMINAL_PHASES: Dict[Outcome, Phase] = {
    Outcome.AI_WIN: Phase.AI_WON,
    Outcome.OPPONENT_WIN: Phase.OPPONENT_WON,
    Outcome.DRAW: Phase.DRAW,
}


# ---------- Board helpers ----------

_CELLS = (EMPTY, AI, OPPONENT)


def as_board(cells: Sequence[Optional[str]]) -> Board:
    """Normalise a 9-cell sequence into a board tuple.

    ``None``, ``""`` and ``" "`` are all accepted as empty cells.
    """
    if len(cells) != 9:
        raise ValueError(f"Board must have exactly 9 cells, got {len(cells)}")
    if isinstance(cells, tuple) and all(c in _CELLS for c in cells):
        return cells
    out: List[str] = []
    for idx, c in enumerate(cells):
        if c is None or c == "" or c == EMPTY:
            out.append(EMPTY)
        elif c in (AI, OPPONENT):
            out.append(c)
        else:
            raise ValueError(f"Invalid mark {c!r} at cell {idx}")
    return tuple(out)


def other(player: Player) -> Player:
    return OPPONENT if player == AI else AI


def _winning_line(board: Board) -> Optional[Tuple[int, int, int]]:
    for a, b, c in WINNING_LINES:
        v = board[a]
        if v != EMPTY and v == board[b] == board[c]:
            return (a, b, c)
    return None


def winning_line(cells: Sequence[Optional[str]]) -> Optional[Tuple[int, int, int]]:
    return _winning_line(as_board(cells))


def winner(cells: Sequence[Optional[str]]) -> Optional[Player]:
    board = as_board(cells)
    line = _winning_line(board)
    return board[line[0]] if line else None


def is_full(cells: Sequence[Optional[str]]) -> bool:
    return EMPTY not in as_board(cells)


def available_moves(cells: Sequence[Optional[str]]) -> List[int]:
    return [i for i, c in enumerate(as_board(cells)) if c == EMPTY]


def place(cells: Sequence[Optional[str]], idx: int, player: Player) -> Board:
    """Return a new board with ``player`` marked at ``idx``."""
    board = as_board(cells)
    if not 0 <= idx < 9:
        raise ValueError(f"Cell index {idx} out of range")
    if board[idx] != EMPTY:
        raise ValueError("Cell already occupied")
    return board[:idx] + (player,) + board[idx + 1 :]


def evaluate(cells: Sequence[Optional[str]]) -> Outcome:
    """Classify a board; a win takes precedence over a full board."""
    board = as_board(cells)
    line = _winning_line(board)
    if line is not None:
        return Outcome.AI_WIN if board[line[0]] == AI else Outcome.OPPONENT_WIN
    if EMPTY not in board:
        return Outcome.DRAW
    return Outcome.UNDECIDED


def _to_move_phase(player: Player) -> Phase:
    return Phase.AI_TO_MOVE if player == AI else Phase.OPPONENT_TO_MOVE


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    """Explicit state machine driving a single game between the AI and a human."""

    starting_player: Player = AI
    board: Board = EMPTY_BOARD
    current_player: Player = field(init=False)
    phase: Phase = field(init=False)
    move_log: List[Tuple[Player, int]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.starting_player not in (AI, OPPONENT):
            raise ValueError(f"Unknown starting player {self.starting_player!r}")
        self.board = as_board(self.board)
        self.current_player = self.starting_player
        outcome = evaluate(self.board)
        if outcome is Outcome.UNDECIDED:
            self.phase = _to_move_phase(self.starting_player)
        else:
            self.phase = _TERMINAL_PHASES[outcome]

    # ---- API used by UI & AI ----

    @property
    def outcome(self) -> Outcome:
        return evaluate(self.board)

    @property
    def winner(self) -> Optional[Player]:
        return winner(self.board)

    @property
    def drawn(self) -> bool:
        return self.phase == Phase.DRAW

    @property
    def finished(self) -> bool:
        return self.phase in (Phase.AI_WON, Phase.OPPONENT_WON, Phase.DRAW)

    def available_moves(self) -> List[int]:
        if self.finished:
            return []
        return available_moves(self.board)

    def play_move(self, cell: int) -> Phase:
        """Mark ``cell`` for the player to move and advance the state machine."""
        if self.finished:
            raise ValueError("Game already finished")

        player = self.current_player
        self.board = place(self.board, cell, player)
        self.move_log.append((player, cell))

        outcome = evaluate(self.board)
        if outcome is Outcome.UNDECIDED:
            self.current_player = other(player)
            self.phase = _to_move_phase(self.current_player)
        else:
            self.phase = _TERMINAL_PHASES[outcome]
            logger.info("Game over after %d moves: %s", len(self.move_log), outcome.value)
        return self.phase

    def reset(self, starting_player: Optional[Player] = None) -> None:
        if starting_player is not None:
            if starting_player not in (AI, OPPONENT):
                raise ValueError(f"Unknown starting player {starting_player!r}")
            self.starting_player = starting_player
        self.board = EMPTY_BOARD
        self.move_log = []
        self.current_player = self.starting_player
        self.phase = _to_move_phase(self.starting_player)

    def clone(self) -> "TicTacToeGame":
        g = TicTacToeGame(starting_player=self.starting_player, board=self.board)
        g.current_player = self.current_player
        g.phase = self.phase
        g.move_log = list(self.move_log)
        return g
