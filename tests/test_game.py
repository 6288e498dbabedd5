"""Unit tests for PerfectXO rules and the game state machine."""

import pytest

from perfectxo.game import (
    AI,
    EMPTY_BOARD,
    OPPONENT,
    WINNING_LINES,
    Outcome,
    Phase,
    TicTacToeGame,
    as_board,
    available_moves,
    evaluate,
    is_full,
    other,
    place,
    winner,
    winning_line,
)


def _reachable_boards():
    seen = set()
    stack = [(EMPTY_BOARD, AI)]
    while stack:
        board, player = stack.pop()
        if board in seen:
            continue
        seen.add(board)
        if evaluate(board) is not Outcome.UNDECIDED:
            continue
        for idx, cell in enumerate(board):
            if cell == " ":
                stack.append((place(board, idx, player), other(player)))
    return seen


def test_empty_board_is_undecided():
    assert evaluate([None] * 9) is Outcome.UNDECIDED
    assert evaluate([""] * 9) is Outcome.UNDECIDED
    assert evaluate(EMPTY_BOARD) is Outcome.UNDECIDED


def test_helpers_treat_none_and_blank_as_empty():
    cells = [None, "", " ", "O", "O", "O", None, "X", "X"]
    assert winner(cells) == OPPONENT
    assert winning_line(cells) == (3, 4, 5)
    assert not is_full(cells)
    assert available_moves(cells) == [0, 1, 2, 6]
    assert place(cells, 0, AI)[0] == AI


def test_win_found_below_empty_top_row():
    cells = [None, None, None, "X", "X", None, "O", "O", "O"]
    assert evaluate(cells) is Outcome.OPPONENT_WIN
    assert winning_line(cells) == (6, 7, 8)


@pytest.mark.parametrize("line", WINNING_LINES)
def test_every_line_detected(line):
    cells = [None] * 9
    for idx in line:
        cells[idx] = "O"
    assert evaluate(cells) is Outcome.OPPONENT_WIN
    assert winning_line(as_board(cells)) == line


def test_ai_row_win():
    board = ["X", "X", "X", "O", "O", None, None, None, None]
    assert evaluate(board) is Outcome.AI_WIN


def test_full_board_without_line_is_draw():
    board = ["X", "O", "X", "X", "O", "O", "O", "X", "X"]
    assert evaluate(board) is Outcome.DRAW


def test_win_takes_precedence_over_full_board():
    board = ["X", "X", "X", "O", "O", "X", "O", "X", "O"]
    assert evaluate(board) is Outcome.AI_WIN


def test_reachable_boards_never_have_two_winners():
    boards = _reachable_boards()
    assert len(boards) == 5478
    for board in boards:
        owners = {
            board[a]
            for a, b, c in WINNING_LINES
            if board[a] != " " and board[a] == board[b] == board[c]
        }
        assert len(owners) <= 1


def test_as_board_rejects_bad_input():
    with pytest.raises(ValueError):
        as_board(["X"] * 8)
    with pytest.raises(ValueError):
        as_board(["Z"] + [None] * 8)


def test_place_returns_new_board():
    board = EMPTY_BOARD
    child = place(board, 4, AI)
    assert board == EMPTY_BOARD
    assert child[4] == AI
    with pytest.raises(ValueError):
        place(child, 4, OPPONENT)
    with pytest.raises(ValueError):
        place(child, 9, OPPONENT)


def test_game_alternates_turns():
    game = TicTacToeGame()
    assert game.phase is Phase.AI_TO_MOVE
    assert game.play_move(4) is Phase.OPPONENT_TO_MOVE
    assert game.current_player == OPPONENT
    assert game.play_move(0) is Phase.AI_TO_MOVE
    assert game.move_log == [(AI, 4), (OPPONENT, 0)]


def test_opponent_can_start():
    game = TicTacToeGame(starting_player=OPPONENT)
    assert game.phase is Phase.OPPONENT_TO_MOVE
    game.play_move(0)
    assert game.board[0] == OPPONENT


def test_occupied_cell_rejected():
    game = TicTacToeGame()
    game.play_move(0)
    with pytest.raises(ValueError):
        game.play_move(0)
    assert game.current_player == OPPONENT


def test_terminal_phase_has_no_transitions():
    game = TicTacToeGame()
    for cell in (0, 3, 1, 4, 2):
        game.play_move(cell)
    assert game.phase is Phase.AI_WON
    assert game.winner == AI
    assert game.available_moves() == []
    with pytest.raises(ValueError):
        game.play_move(8)


def test_draw_phase():
    game = TicTacToeGame()
    for cell in (0, 1, 2, 4, 3, 5, 7, 6, 8):
        game.play_move(cell)
    assert game.phase is Phase.DRAW
    assert game.drawn
    assert game.winner is None


def test_reset_returns_to_starting_phase():
    game = TicTacToeGame()
    for cell in (0, 3, 1, 4, 2):
        game.play_move(cell)
    game.reset(starting_player=OPPONENT)
    assert game.board == EMPTY_BOARD
    assert game.phase is Phase.OPPONENT_TO_MOVE
    assert game.move_log == []


def test_clone_is_independent():
    game = TicTacToeGame()
    game.play_move(4)
    copy = game.clone()
    copy.play_move(0)
    assert game.board[0] == " "
    assert game.move_log == [(AI, 4)]


def test_game_built_on_won_board_is_finished():
    game = TicTacToeGame(board=["X", "X", "X", "O", "O", None, None, None, None])
    assert game.phase is Phase.AI_WON
    assert game.finished
    assert game.available_moves() == []
    with pytest.raises(ValueError):
        game.play_move(5)


def test_game_built_on_full_board_is_drawn():
    game = TicTacToeGame(board=["X", "O", "X", "X", "O", "O", "O", "X", "X"])
    assert game.phase is Phase.DRAW
    assert game.drawn
