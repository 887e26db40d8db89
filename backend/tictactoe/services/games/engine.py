from typing import Optional, Sequence

from tictactoe.models import ACTIVE, BOARD_SIZE, EMPTY, FINISHED, O, TIE, X, GameState
from .errors import CellOccupied, InvalidState, OutOfRange, WrongTurn

WIN_LINES = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),  # diagonals
)


def evaluate(board: Sequence[str]) -> Optional[str]:
    """Return the winning symbol, ``'tie'`` for a full board, or None."""
    for a, b, c in WIN_LINES:
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return board[a]
    if all(cell != EMPTY for cell in board):
        return TIE
    return None


def other(symbol: str) -> str:
    return O if symbol == X else X


def apply_move(state: GameState, index, symbol: str) -> GameState:
    """Play ``symbol`` at ``index`` and return the resulting state.

    ``state`` is never modified; on any rule violation a MoveError is raised.
    """
    if state.status != ACTIVE:
        raise InvalidState()
    if symbol != state.current_turn:
        raise WrongTurn()
    # bool is an int subclass; True/False are not cell indexes
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < BOARD_SIZE:
        raise OutOfRange()
    if state.board[index] != EMPTY:
        raise CellOccupied()

    result = state.copy()
    result.board[index] = symbol
    result.move_count += 1
    outcome = evaluate(result.board)
    if outcome:
        result.status = FINISHED
        result.winner = outcome
    else:
        result.current_turn = other(symbol)
    return result
