"""Tests for the nxo move selector."""

import random

import pytest

from nxo.ai import Difficulty, MoveSelector, select_move
from nxo.game import (
    Board,
    Game,
    IllegalMove,
    InvalidConfiguration,
    Player,
    Status,
    empty_cells,
    new_board,
)

X, O = Player.X, Player.O


def test_medium_takes_immediate_win():
    board = Board.from_string("OO.XX....")
    assert select_move(board, 3, "medium", "O", "X") == 2


def test_medium_blocks_opponent_win():
    board = Board.from_string("XX.......")
    assert select_move(board, 3, "medium", "O", "X") == 2


@pytest.mark.parametrize("size, center", [(3, 4), (4, 8), (5, 12)])
def test_medium_takes_center(size, center):
    board = new_board(size)
    board.place(0, X)
    assert select_move(board, size, Difficulty.MEDIUM, O, X) == center


def test_medium_falls_back_to_random():
    board = Board.from_string("X...X...O")
    move = select_move(board, 3, "medium", "O", "X", rng=random.Random(3))
    # 0-4-8 is already blocked and the centre is taken
    assert move in empty_cells(board)


def test_easy_picks_empty_cell_deterministically_with_seed():
    board = Board.from_string("XO.X.O...")
    first = select_move(board, 3, "easy", "X", "O", rng=random.Random(42))
    second = select_move(board, 3, "easy", "X", "O", rng=random.Random(42))
    assert first == second
    assert first in empty_cells(board)


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_full_board_returns_none(difficulty):
    board = Board.from_string("XOXOXOOXO")
    assert select_move(board, 3, difficulty, "O", "X") is None


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_won_board_is_rejected(difficulty):
    board = Board.from_string("XXXOO....")
    with pytest.raises(IllegalMove):
        select_move(board, 3, difficulty, "O", "X")


def test_invalid_configuration_is_rejected():
    board = new_board(3)
    with pytest.raises(InvalidConfiguration):
        select_move(board, 3, "impossible", "O", "X")
    with pytest.raises(InvalidConfiguration):
        select_move(board, 4, "hard", "O", "X")
    with pytest.raises(InvalidConfiguration):
        select_move(board, 3, "hard", "O", "O")
    with pytest.raises(InvalidConfiguration):
        select_move(board, 3, "hard", "Z", "X")


def test_selector_leaves_board_untouched():
    board = Board.from_string("X...O...X")
    before = board.copy()
    select_move(board, 3, "hard", "O", "X")
    select_move(board, 3, "medium", "O", "X")
    assert board == before


def test_hard_takes_immediate_win_over_block():
    board = Board.from_string("OO.XX....")
    assert select_move(board, 3, "hard", "O", "X") == 2


def test_hard_blocks():
    board = Board.from_string("XX..O....")
    assert select_move(board, 3, "hard", "O", "X") == 2


def test_hard_opening_uses_lowest_index_on_ties():
    assert select_move(new_board(3), 3, "hard", "X", "O") == 0


def test_hard_wins_on_4x4():
    board = Board.from_string("XXX." "OOO." "X..." "....")
    assert select_move(board, 4, "hard", "O", "X") == 7


def test_hard_blocks_on_5x5():
    board = Board.from_string("XXXX." "OOO.." "....." "....." ".....")
    assert select_move(board, 5, "hard", "O", "X") == 4


def test_selector_counts_nodes():
    ai = MoveSelector(player="O", difficulty="hard", max_depth=2)
    ai.choose(Board.from_string("X........"))
    assert ai.nodes_evaluated > 0


def _play_out(game: Game, x_ai: MoveSelector, o_ai: MoveSelector) -> Game:
    while not game.outcome.is_over:
        ai = x_ai if game.current_player is X else o_ai
        game.play(ai.choose(game.board))
    return game


def test_hard_vs_hard_is_a_draw():
    game = _play_out(
        Game.new(3),
        MoveSelector(player=X, difficulty="hard"),
        MoveSelector(player=O, difficulty="hard"),
    )
    assert game.outcome.status is Status.DRAW


def test_hard_never_loses_to_medium():
    rng = random.Random(7)
    for _ in range(20):
        game = _play_out(
            Game.new(3),
            MoveSelector(player=X, difficulty="medium", rng=rng),
            MoveSelector(player=O, difficulty="hard"),
        )
        assert game.outcome.winner is not X


def test_hard_never_loses_against_any_x_line():
    ai = MoveSelector(player=O, difficulty="hard")
    replies = {}
    stack = [Board(size=3)]
    finished = 0
    while stack:
        board = stack.pop()
        for index in empty_cells(board):
            game = Game(board=board.copy(), current_player=X)
            game.play(index)
            if game.outcome.is_over:
                assert game.outcome.winner is not X
                finished += 1
                continue
            key = tuple(game.board.cells)
            if key not in replies:
                replies[key] = ai.choose(game.board)
            game.play(replies[key])
            if game.outcome.is_over:
                assert game.outcome.winner is O
                finished += 1
                continue
            stack.append(game.board)
    assert finished > 0


@pytest.mark.parametrize("difficulty", ["medium", "hard"])
def test_plain_string_board_takes_immediate_win(difficulty):
    board = Board(size=3, cells=["O", "O", None, "X", "X", None, None, None, None])
    for seed in range(5):
        move = select_move(board, 3, difficulty, "O", "X", rng=random.Random(seed))
        assert move == 2
