"""Core rules for N×N tic-tac-toe: board, move legality and win/draw detection."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Iterator, List, Optional, Tuple

SUPPORTED_SIZES: Tuple[int, ...] = (3, 4, 5)


class NxoError(ValueError):
    """Base class for errors raised by the engine."""


class IllegalMove(NxoError):
    """Out-of-range index, occupied cell, wrong turn, or finished game."""


class InvalidConfiguration(NxoError):
    """Unsupported board size, difficulty tier or side assignment."""


class Player(str, Enum):
    X = "X"
    O = "O"

    def opponent(self) -> "Player":
        return Player.O if self is Player.X else Player.X


class Status(str, Enum):
    IN_PROGRESS = "in_progress"
    WIN = "win"
    DRAW = "draw"


@dataclass(frozen=True)
class Outcome:
    status: Status
    winner: Optional[Player] = None

    @classmethod
    def in_progress(cls) -> "Outcome":
        return cls(Status.IN_PROGRESS)

    @classmethod
    def win(cls, player: Player) -> "Outcome":
        return cls(Status.WIN, player)

    @classmethod
    def draw(cls) -> "Outcome":
        return cls(Status.DRAW)

    @property
    def is_over(self) -> bool:
        return self.status is not Status.IN_PROGRESS


@lru_cache(maxsize=None)
def winning_lines(size: int) -> Tuple[Tuple[int, ...], ...]:
    """Rows, then columns, then the main diagonal, then the anti-diagonal."""
    rows = [tuple(r * size + c for c in range(size)) for r in range(size)]
    cols = [tuple(r * size + c for r in range(size)) for c in range(size)]
    diag = tuple(i * (size + 1) for i in range(size))
    anti = tuple((i + 1) * (size - 1) for i in range(size))
    return tuple(rows + cols + [diag, anti])


# ---------- Board ----------


@dataclass
class Board:
    size: int = 3
    # None for empty, otherwise the Player holding the cell
    cells: List[Optional[Player]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.size, int) or self.size < 3:
            raise InvalidConfiguration(f"Board size must be at least 3, got {self.size!r}")
        if not self.cells:
            self.cells = [None] * (self.size * self.size)
        elif len(self.cells) != self.size * self.size:
            raise InvalidConfiguration(
                f"A {self.size}x{self.size} board needs {self.size * self.size} cells, "
                f"got {len(self.cells)}"
            )
        try:
            self.cells = [None if c is None else Player(c) for c in self.cells]
        except ValueError as exc:
            raise InvalidConfiguration(f"Unknown cell mark: {exc}") from exc

    @classmethod
    def from_string(cls, layout: str) -> "Board":
        """Build a board from a row-major string of 'X', 'O' and '.'/'_'/' '.

        ``"XO......."`` is a 3x3 board with X on 0 and O on 1.
        """
        marks = {"X": Player.X, "O": Player.O, ".": None, "_": None, " ": None}
        try:
            cells = [marks[ch] for ch in layout.upper()]
        except KeyError as exc:
            raise InvalidConfiguration(f"Unknown cell marker {exc.args[0]!r}") from exc
        size = int(round(len(cells) ** 0.5))
        if size * size != len(cells):
            raise InvalidConfiguration(f"Layout of length {len(cells)} is not square")
        return cls(size=size, cells=cells)

    def __str__(self) -> str:
        return "\n".join(
            " ".join(c.value if c else "." for c in row) for row in self.rows()
        )

    def rows(self) -> List[List[Optional[Player]]]:
        n = self.size
        return [self.cells[r * n : (r + 1) * n] for r in range(n)]

    def copy(self) -> "Board":
        return Board(size=self.size, cells=self.cells.copy())

    def is_full(self) -> bool:
        return all(c is not None for c in self.cells)

    def place(self, index: int, player: Player) -> None:
        """Put ``player``'s mark on ``index`` in place, enforcing legality."""
        _check_index(self, index)
        if self.cells[index] is not None:
            raise IllegalMove(f"Cell {index} is already occupied")
        if is_terminal(self, self.size).is_over:
            raise IllegalMove("Game already finished")
        self.cells[index] = Player(player)

    @contextmanager
    def trial(self, index: int, player: Player) -> Iterator["Board"]:
        """Temporarily mark an empty cell; the cell is cleared again on exit."""
        if self.cells[index] is not None:
            raise IllegalMove(f"Cell {index} is already occupied")
        self.cells[index] = player
        try:
            yield self
        finally:
            self.cells[index] = None


def _check_index(board: Board, index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise IllegalMove(f"Cell index must be an integer, got {index!r}")
    if not 0 <= index < len(board.cells):
        raise IllegalMove(
            f"Cell index {index} is outside 0..{len(board.cells) - 1}"
        )


# ---------- Rules ----------


def new_board(size: int = 3) -> Board:
    if size not in SUPPORTED_SIZES:
        raise InvalidConfiguration(
            f"Unsupported board size {size!r}. "
            f"Choose one of {', '.join(map(str, SUPPORTED_SIZES))}."
        )
    return Board(size=size)


def apply_move(board: Board, index: int, player: Player) -> Board:
    """Return a copy of ``board`` with ``player`` on ``index``.

    The input board is left untouched whether or not the move is legal.
    """
    child = board.copy()
    child.place(index, player)
    return child


def empty_cells(board: Board) -> List[int]:
    return [i for i, c in enumerate(board.cells) if c is None]


def current_player(board: Board) -> Player:
    """Side to move, derived from mark counts. X always opens."""
    x = board.cells.count(Player.X)
    o = board.cells.count(Player.O)
    return Player.X if x == o else Player.O


def winning_line(board: Board, size: Optional[int] = None) -> Optional[Tuple[int, ...]]:
    if size is not None and size != board.size:
        raise InvalidConfiguration(
            f"Board is {board.size}x{board.size} but size {size!r} was given"
        )
    size = board.size
    cells = board.cells
    for line in winning_lines(size):
        first = cells[line[0]]
        # Lines starting on an empty cell can't be complete
        if first is None:
            continue
        if all(cells[i] == first for i in line):
            return line
    return None


def winner_of(board: Board, size: Optional[int] = None) -> Optional[Player]:
    line = winning_line(board, size)
    return board.cells[line[0]] if line else None


def is_terminal(board: Board, size: Optional[int] = None) -> Outcome:
    winner = winner_of(board, size)
    if winner is not None:
        return Outcome.win(winner)
    if board.is_full():
        return Outcome.draw()
    return Outcome.in_progress()


# ---------- Game ----------


@dataclass
class Game:
    """A board plus the side to move; rejects out-of-turn and illegal moves."""

    board: Board = field(default_factory=Board)
    current_player: Player = Player.X

    @classmethod
    def new(cls, size: int = 3) -> "Game":
        return cls(board=new_board(size))

    @property
    def size(self) -> int:
        return self.board.size

    @property
    def outcome(self) -> Outcome:
        return is_terminal(self.board, self.board.size)

    def available_moves(self) -> List[int]:
        if self.outcome.is_over:
            return []
        return empty_cells(self.board)

    def play(self, index: int, player: Optional[Player] = None) -> Outcome:
        """Apply a move for the side to move and hand the turn over."""
        if player is not None and Player(player) is not self.current_player:
            raise IllegalMove(f"It is {self.current_player.value}'s turn")
        self.board.place(index, self.current_player)
        outcome = self.outcome
        if not outcome.is_over:
            self.current_player = self.current_player.opponent()
        return outcome

    def reset(self, size: Optional[int] = None) -> None:
        self.board = new_board(self.board.size if size is None else size)
        self.current_player = Player.X
