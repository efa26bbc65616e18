"""FastAPI game service: sessions, score tally and human-then-AI turn sequencing."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import Difficulty, MoveSelector
from .game import SUPPORTED_SIZES, Game, NxoError, Player, Status, winning_line

logger = logging.getLogger(__name__)

# Seconds the AI waits before answering; a presentation nicety, not a rule
AI_THINK_DELAY: Tuple[float, float] = (0.3, 0.7)
AI_SIDE = Player.O


@dataclass
class GameSession:
    """Container for an active game, its settings and the running score."""

    game: Game
    difficulty: Difficulty = Difficulty.EASY
    vs_ai: bool = True
    scores: Dict[str, int] = field(default_factory=lambda: {"X": 0, "O": 0})
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def selector(self) -> MoveSelector:
        return MoveSelector(player=AI_SIDE, difficulty=self.difficulty)

    def restart(self, size: Optional[int] = None) -> None:
        self.game.reset(size)
        self.move_log.clear()
        self.ai_pending = False


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="nxo", description="N×N tic-tac-toe against a minimax opponent")


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    size: int = Field(default=3, description="Board side length")
    difficulty: Difficulty = Field(default=Difficulty.EASY)
    vs_ai: bool = Field(default=True, alias="vsAI")

    @field_validator("size")
    @classmethod
    def ensure_supported_size(cls, value: int) -> int:
        return _validate_size(value)


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0)


class SettingsRequest(BaseModel):
    """Partial settings update; omitted fields are left as they are."""

    model_config = ConfigDict(populate_by_name=True)

    size: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    vs_ai: Optional[bool] = Field(default=None, alias="vsAI")

    @field_validator("size")
    @classmethod
    def ensure_supported_size(cls, value: Optional[int]) -> Optional[int]:
        return value if value is None else _validate_size(value)


def _validate_size(value: int) -> int:
    if value not in SUPPORTED_SIZES:
        raise ValueError(
            f"Unsupported board size {value}. "
            f"Choose one of {', '.join(map(str, SUPPORTED_SIZES))}."
        )
    return value


def _create_session(size: int, difficulty: Difficulty, vs_ai: bool) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    session = GameSession(game=Game.new(size), difficulty=difficulty, vs_ai=vs_ai)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info(
        "session %s created: size=%d difficulty=%s vs_ai=%s",
        session_id,
        size,
        difficulty.value,
        vs_ai,
    )
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _record_move(session: GameSession, player: Player, cell_index: int) -> None:
    """Log a move that was just applied and tally the result if it ended the game."""

    session.move_log.append({"player": player.value, "cellIndex": cell_index})
    outcome = session.game.outcome
    if outcome.status is Status.WIN:
        session.scores[outcome.winner.value] += 1
        logger.info("%s wins after %d moves", outcome.winner.value, len(session.move_log))
    elif outcome.status is Status.DRAW:
        logger.info("game drawn after %d moves", len(session.move_log))


def _ai_to_move(session: GameSession) -> bool:
    game = session.game
    return (
        session.vs_ai
        and not game.outcome.is_over
        and game.current_player is AI_SIDE
    )


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        try:
            # Settings may have changed while we slept
            if not session.ai_pending or not _ai_to_move(session):
                return
            cell_index = session.selector().choose(session.game.board)
            if cell_index is None:
                return
            session.game.play(cell_index, AI_SIDE)
            _record_move(session, AI_SIDE, cell_index)
        finally:
            session.ai_pending = False


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        outcome = game.outcome
        line = winning_line(game.board)
        state: Dict[str, object] = {
            "id": game_id,
            "size": game.size,
            "cells": [c.value if c else "" for c in game.board.cells],
            "currentPlayer": game.current_player.value,
            "status": outcome.status.value,
            "winner": outcome.winner.value if outcome.winner else None,
            "winningLine": list(line) if line else None,
            "availableMoves": game.available_moves(),
            "scores": dict(session.scores),
            "difficulty": session.difficulty.value,
            "vsAI": session.vs_ai,
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    cell_index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    should_schedule_ai = False
    with session.lock:
        game = session.game
        if game.outcome.is_over:
            raise HTTPException(status_code=400, detail="Game already finished")
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        if session.vs_ai and game.current_player is AI_SIDE:
            raise HTTPException(status_code=400, detail="It is the AI's turn")

        player = game.current_player
        try:
            game.play(cell_index, player)
        except NxoError as exc:
            logger.warning("session %s rejected move %d: %s", game_id, cell_index, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        _record_move(session, player, cell_index)

        should_schedule_ai = _ai_to_move(session)
        if should_schedule_ai:
            session.ai_pending = True

    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request.size, request.difficulty, request.vs_ai)
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
def reset_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        session.restart()
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/settings")
def update_settings(game_id: str, request: SettingsRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        if request.difficulty is not None:
            session.difficulty = request.difficulty
        restart = False
        if request.vs_ai is not None and request.vs_ai != session.vs_ai:
            session.vs_ai = request.vs_ai
            restart = True
        if request.size is not None and request.size != session.game.size:
            restart = True
        if restart:
            session.restart(request.size)
    return _serialize_session(game_id, session)
