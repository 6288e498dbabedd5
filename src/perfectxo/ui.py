"""FastAPI-powered web UI for playing PerfectXO against the minimax AI."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import MinimaxAI
from .game import AI, EMPTY, OPPONENT, Phase, Player, TicTacToeGame, winning_line

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """Container for an active game, its AI opponent and the running score."""

    game: TicTacToeGame
    ai: MinimaxAI
    scores: Dict[Player, int] = field(default_factory=lambda: {AI: 0, OPPONENT: 0})
    ai_pending: bool = False
    generation: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="PerfectXO", description="Tic-tac-toe against a perfect AI")


AI_THINK_DELAY = 0.5  # seconds
STARTING_PLAYERS: Dict[str, Player] = {"ai": AI, "opponent": OPPONENT}
_WON_PHASES: Dict[Phase, Player] = {Phase.AI_WON: AI, Phase.OPPONENT_WON: OPPONENT}


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    starting_player: Literal["ai", "opponent"] = Field(
        default="ai",
        alias="startingPlayer",
        description="Who places the first mark",
    )

    @field_validator("starting_player", mode="before")
    @classmethod
    def normalise_starting_player(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0, le=8)


def _create_session(starting_player: Player) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    game = TicTacToeGame(starting_player=starting_player)
    session = GameSession(game=game, ai=MinimaxAI(player=AI))
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("Created game %s (%s starts)", session_id, starting_player)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _record_result(game_id: str, session: GameSession) -> None:
    # Caller holds session.lock.
    game = session.game
    won_by = _WON_PHASES.get(game.phase)
    if won_by is not None:
        session.scores[won_by] += 1
    if game.finished:
        logger.info("Game %s finished: %s", game_id, game.phase.value)


def _should_schedule_ai(session: GameSession) -> bool:
    game = session.game
    return not game.finished and game.current_player == session.ai.player


def _schedule_ai(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    # Caller holds session.lock.
    if background_tasks is None or not _should_schedule_ai(session):
        return
    session.ai_pending = True
    background_tasks.add_task(_run_ai_turn, game_id, session.generation)


def _run_ai_turn(game_id: str, generation: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, AI_THINK_DELAY))

    with session.lock:
        if session.generation != generation:
            return
        try:
            if not _should_schedule_ai(session):
                return
            cell_index = session.ai.choose(session.game)
            session.game.play_move(cell_index)
            _record_result(game_id, session)
        finally:
            session.ai_pending = False


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        move_log = [
            {"player": player, "cellIndex": cell} for player, cell in game.move_log
        ]
        line = winning_line(game.board) if game.phase in _WON_PHASES else None

        state: Dict[str, object] = {
            "id": game_id,
            "board": [c if c != EMPTY else "" for c in game.board],
            "currentPlayer": game.current_player,
            "startingPlayer": game.starting_player,
            "phase": game.phase.value,
            "outcome": game.outcome.value,
            "winner": game.winner,
            "drawn": game.drawn,
            "winningLine": list(line) if line else None,
            "availableMoves": game.available_moves(),
            "moveLog": move_log,
            "scores": dict(session.scores),
            "aiPending": session.ai_pending,
        }
        if move_log:
            state["lastMove"] = move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        game = session.game
        if game.finished:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        if game.current_player != OPPONENT:
            raise HTTPException(status_code=400, detail="It is not your turn")

        try:
            game.play_move(cell_index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        _record_result(game_id, session)
        _schedule_ai(game_id, session, background_tasks)


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, session = _create_session(STARTING_PLAYERS[request.starting_player])
    with session.lock:
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.cell_index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str, background_tasks: BackgroundTasks) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.generation += 1
        session.ai_pending = False
        session.game.reset()
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/scores/reset")
def reset_scores(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.scores = {AI: 0, OPPONENT: 0}
    return _serialize_session(game_id, session)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>PerfectXO</title>
    <style>
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        flex-direction: column;
        align-items: center;
        justify-content: center;
        background: #f3f4f6;
        font-family: system-ui, sans-serif;
        color: #1f2937;
      }
      h1 { font-size: 2.25rem; margin-bottom: 1.5rem; }
      .scores { display: flex; gap: 2rem; margin-bottom: 1.5rem; font-size: 1.5rem; font-weight: 700; }
      .x { color: #2563eb; }
      .o { color: #dc2626; }
      #status { font-size: 1.5rem; font-weight: 700; min-height: 2rem; margin-bottom: 1rem; }
      #message { color: #b91c1c; min-height: 1.25rem; margin-bottom: 0.5rem; }
      #board {
        display: grid;
        grid-template-columns: repeat(3, 5rem);
        gap: 0.5rem;
        padding: 1rem;
        background: white;
        border-radius: 0.5rem;
        box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1);
        margin-bottom: 2rem;
      }
      #board button {
        width: 5rem;
        height: 5rem;
        border: 2px solid #d1d5db;
        background: white;
        font-size: 2.25rem;
        font-weight: 700;
        cursor: default;
      }
      #board button.playable { cursor: pointer; }
      #board button.playable:hover { background: #f3f4f6; }
      #board button.winning { background: #fef3c7; }
      .controls { display: flex; gap: 1rem; }
      .controls button { color: white; border: none; padding: 0.5rem 1rem; border-radius: 0.25rem; cursor: pointer; }
      #new-game { background: #3b82f6; }
      #reset-scores { background: #6b7280; }
    </style>
  </head>
  <body>
    <h1>Tic Tac Toe</h1>
    <div class=\"scores\">
      <div class=\"x\">AI: <span id=\"score-x\">0</span></div>
      <div class=\"o\">You: <span id=\"score-o\">0</span></div>
    </div>
    <div id=\"status\"></div>
    <div id=\"message\"></div>
    <div id=\"board\"></div>
    <div class=\"controls\">
      <button id=\"new-game\">New Game</button>
      <button id=\"reset-scores\">Reset Scores</button>
    </div>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const messageEl = document.getElementById('message');
      let gameId = null;
      let gameState = null;
      let pollHandle = null;
      let isRequestPending = false;

      function stopPolling() {
        if (pollHandle !== null) {
          clearTimeout(pollHandle);
          pollHandle = null;
        }
      }

      function ensurePolling() {
        if (pollHandle !== null) return;
        pollHandle = window.setTimeout(pollState, 250);
      }

      async function request(url, options = {}) {
        const response = await fetch(url, {
          headers: { 'Content-Type': 'application/json' },
          ...options,
        });
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) {
          throw new Error(payload?.detail || 'Request failed');
        }
        return payload;
      }

      async function startGame() {
        messageEl.textContent = '';
        try {
          setState(await request('/api/game', { method: 'POST', body: JSON.stringify({ startingPlayer: 'ai' }) }));
        } catch (error) {
          messageEl.textContent = error.message || 'Network error. Please try again.';
        }
      }

      async function newGame() {
        if (!gameId) return startGame();
        try {
          setState(await request(`/api/game/${gameId}/reset`, { method: 'POST' }));
        } catch (error) {
          messageEl.textContent = error.message;
        }
      }

      async function resetScores() {
        if (!gameId) return;
        try {
          setState(await request(`/api/game/${gameId}/scores/reset`, { method: 'POST' }));
        } catch (error) {
          messageEl.textContent = error.message;
        }
      }

      async function pollState() {
        pollHandle = null;
        if (!gameId) return;
        try {
          setState(await request(`/api/game/${gameId}`));
        } catch (error) {
          console.error('Polling failed', error);
        }
      }

      async function sendMove(cellIndex) {
        if (!gameState || isRequestPending || !gameState.availableMoves.includes(cellIndex)) return;
        if (gameState.aiPending || gameState.currentPlayer !== 'O') return;
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          setState(await request(`/api/game/${gameId}/move`, { method: 'POST', body: JSON.stringify({ cellIndex }) }));
        } catch (error) {
          messageEl.textContent = error.message;
        } finally {
          isRequestPending = false;
        }
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        renderBoard();
        updateStatus();
        if (gameState.aiPending) {
          ensurePolling();
        } else {
          stopPolling();
        }
      }

      function renderBoard() {
        boardEl.innerHTML = '';
        const winning = gameState?.winningLine || [];
        const canPlay = gameState && !gameState.aiPending && gameState.currentPlayer === 'O';
        for (let i = 0; i < 9; i += 1) {
          const mark = gameState ? gameState.board[i] : '';
          const cell = document.createElement('button');
          cell.textContent = mark;
          if (mark) cell.classList.add(mark === 'X' ? 'x' : 'o');
          if (winning.includes(i)) cell.classList.add('winning');
          const playable = canPlay && gameState.availableMoves.includes(i);
          if (playable) cell.classList.add('playable');
          cell.disabled = !playable;
          cell.addEventListener('click', () => sendMove(i));
          boardEl.appendChild(cell);
        }
      }

      function updateStatus() {
        document.getElementById('score-x').textContent = gameState.scores.X;
        document.getElementById('score-o').textContent = gameState.scores.O;
        if (gameState.winner) {
          statusEl.textContent = gameState.winner === 'X' ? 'AI won!' : 'You won!';
        } else if (gameState.drawn) {
          statusEl.textContent = "It's a draw!";
        } else if (gameState.aiPending || gameState.currentPlayer === 'X') {
          statusEl.textContent = 'AI is thinking…';
        } else {
          statusEl.textContent = 'Your move';
        }
      }

      document.getElementById('new-game').addEventListener('click', newGame);
      document.getElementById('reset-scores').addEventListener('click', resetScores);
      startGame();
    </script>
  </body>
</html>
"""
