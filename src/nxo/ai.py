"""Move selection for the automated side: random, heuristic and minimax tiers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union
import logging
import math
import random

from .game import (
    Board,
    IllegalMove,
    InvalidConfiguration,
    Player,
    empty_cells,
    winner_of,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 10

# Plies searched by the hard tier per board size; None means the full game tree.
HARD_DEPTH_LIMITS: Dict[int, Optional[int]] = {3: None, 4: 4, 5: 3}

# TT entry flags
EXACT, LOWER, UPPER = 0, 1, 2

_default_rng = random.Random()


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: Union[str, "Difficulty"]) -> "Difficulty":
        try:
            return cls(value)
        except ValueError as exc:
            choices = ", ".join(d.value for d in cls)
            raise InvalidConfiguration(
                f"Unknown difficulty {value!r}. Choose one of {choices}."
            ) from exc


def _side(value: Union[str, Player]) -> Player:
    try:
        return Player(value)
    except ValueError as exc:
        raise InvalidConfiguration(f"Unknown side {value!r}") from exc


@dataclass
class TTEntry:
    score: float
    flag: int
    best_move: Optional[int]


@dataclass
class MoveSelector:
    """Picks a cell for ``player`` at the given difficulty.

    - MoveSelector(player="O", difficulty="hard")
    - choose(board) -> cell index, or None when the board is full
    """

    player: Player = Player.O
    difficulty: Difficulty = Difficulty.HARD
    rng: random.Random = field(default_factory=lambda: _default_rng, repr=False)
    # Overrides HARD_DEPTH_LIMITS when set
    max_depth: Optional[int] = None
    nodes_evaluated: int = field(default=0, init=False)
    _tt: Dict[tuple, TTEntry] = field(default_factory=dict, init=False, repr=False)
    _limit: Optional[int] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.player = _side(self.player)
        self.difficulty = Difficulty.parse(self.difficulty)
        if self.max_depth is not None and self.max_depth < 1:
            raise InvalidConfiguration("max_depth must be at least 1")

    @property
    def opponent(self) -> Player:
        return self.player.opponent()

    # ---- public API ----

    def choose(self, board: Board) -> Optional[int]:
        moves = empty_cells(board)
        if not moves:
            return None
        if winner_of(board, board.size) is not None:
            raise IllegalMove("Game already finished")

        # Work on a private copy so the caller's board is never touched
        work = board.copy()
        if self.difficulty is Difficulty.EASY:
            move = self._random_move(moves)
        elif self.difficulty is Difficulty.MEDIUM:
            move = self._heuristic_move(work, moves)
        else:
            move = self._best_move(work, moves)
        logger.debug(
            "%s (%s) picked cell %d on %dx%d board",
            self.player.value,
            self.difficulty.value,
            move,
            board.size,
            board.size,
        )
        return move

    # ---- easy ----

    def _random_move(self, moves: List[int]) -> int:
        return self.rng.choice(moves)

    # ---- medium ----

    def _completing_move(self, board: Board, moves: List[int], side: Player) -> Optional[int]:
        for move in moves:
            with board.trial(move, side):
                if winner_of(board, board.size) is side:
                    return move
        return None

    def _heuristic_move(self, board: Board, moves: List[int]) -> int:
        win = self._completing_move(board, moves, self.player)
        if win is not None:
            return win
        block = self._completing_move(board, moves, self.opponent)
        if block is not None:
            return block
        center = (board.size * board.size) // 2
        if board.cells[center] is None:
            return center
        return self._random_move(moves)

    # ---- hard ----

    def _best_move(self, board: Board, moves: List[int]) -> int:
        self.nodes_evaluated = 0
        self._tt = {}
        self._limit = (
            self.max_depth
            if self.max_depth is not None
            else HARD_DEPTH_LIMITS.get(board.size)
        )

        best_score = -math.inf
        best_move = moves[0]
        # Scan order matters: strict '>' keeps the lowest index on equal scores
        for move in moves:
            with board.trial(move, self.player):
                score = self._minimax(board, 0, False, best_score, math.inf)
            if score > best_score:
                best_score, best_move = score, move

        logger.debug(
            "minimax: move=%d score=%s nodes=%d limit=%s",
            best_move,
            best_score,
            self.nodes_evaluated,
            self._limit,
        )
        self._tt = {}
        return best_move

    def _minimax(
        self,
        board: Board,
        depth: int,
        maximizing: bool,
        alpha: float,
        beta: float,
    ) -> float:
        self.nodes_evaluated += 1

        winner = winner_of(board, board.size)
        if winner is self.player:
            return WIN_SCORE - depth
        if winner is not None:
            return depth - WIN_SCORE
        moves = empty_cells(board)
        if not moves:
            return 0
        if self._limit is not None and depth + 1 >= self._limit:
            return 0

        # Depth and side to move both follow from the cells within one search
        key = tuple(board.cells)
        tt_hit = self._tt.get(key)
        if tt_hit:
            if tt_hit.flag == EXACT:
                return tt_hit.score
            if tt_hit.flag == LOWER and tt_hit.score >= beta:
                return tt_hit.score
            if tt_hit.flag == UPPER and tt_hit.score <= alpha:
                return tt_hit.score
            if tt_hit.best_move in moves:
                moves.remove(tt_hit.best_move)
                moves.insert(0, tt_hit.best_move)

        alpha_orig, beta_orig = alpha, beta
        best_move: Optional[int] = None

        if maximizing:
            value = -math.inf
            for move in moves:
                with board.trial(move, self.player):
                    score = self._minimax(board, depth + 1, False, alpha, beta)
                if score > value:
                    value, best_move = score, move
                alpha = max(alpha, value)
                if alpha >= beta:
                    break
        else:
            value = math.inf
            for move in moves:
                with board.trial(move, self.opponent):
                    score = self._minimax(board, depth + 1, True, alpha, beta)
                if score < value:
                    value, best_move = score, move
                beta = min(beta, value)
                if alpha >= beta:
                    break

        if value <= alpha_orig:
            flag = UPPER
        elif value >= beta_orig:
            flag = LOWER
        else:
            flag = EXACT
        self._tt[key] = TTEntry(score=value, flag=flag, best_move=best_move)
        return value


def select_move(
    board: Board,
    size: int,
    difficulty: Union[str, Difficulty],
    ai_side: Union[str, Player],
    human_side: Union[str, Player],
    rng: Optional[random.Random] = None,
) -> Optional[int]:
    """Choose a cell for ``ai_side``; None only when no empty cell is left."""
    if size != board.size:
        raise InvalidConfiguration(
            f"Board is {board.size}x{board.size} but size {size!r} was given"
        )
    ai = _side(ai_side)
    if _side(human_side) is ai:
        raise InvalidConfiguration("AI and human cannot play the same side")
    selector = MoveSelector(
        player=ai,
        difficulty=Difficulty.parse(difficulty),
        rng=rng if rng is not None else _default_rng,
    )
    return selector.choose(board)
