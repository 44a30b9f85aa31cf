"""A backtracking sudoku solver."""

from __future__ import annotations

from dnstoys.service import QueryError, Service

TTL = 900

BAD_INPUT = "invalid puzzle string. See dig help .."

_DIGITS = frozenset("0123456789")

Grid = list[list[int]]


def parse_puzzle(p: str) -> Grid:
    """Parse nine dot separated rows of nine digits, 0 marking an empty cell."""
    rows = p.split(".")
    if len(rows) != 9 or any(len(row) != 9 or not set(row) <= _DIGITS for row in rows):
        raise QueryError(BAD_INPUT)
    return [[int(c) for c in row] for row in rows]


def format_puzzle(puzzle: Grid) -> str:
    """Render a grid as nine dot separated rows of digits."""
    return ".".join("".join(str(v) for v in row) for row in puzzle)


def _candidates(grid: Grid, row: int, col: int) -> list[int]:
    used = set(grid[row])
    used.update(r[col] for r in grid)
    br, bc = row - row % 3, col - col % 3
    used.update(v for r in grid[br:br + 3] for v in r[bc:bc + 3])
    return [n for n in range(1, 10) if n not in used]


def _first_empty(grid: Grid) -> tuple[int, int] | None:
    return next(
        ((r, c) for r, row in enumerate(grid) for c, v in enumerate(row) if v == 0),
        None,
    )


def _fill(grid: Grid) -> bool:
    cell = _first_empty(grid)
    if cell is None:
        return True
    row, col = cell
    for value in _candidates(grid, row, col):
        grid[row][col] = value
        if _fill(grid):
            return True
    grid[row][col] = 0
    return False


def solve(puzzle: Grid) -> Grid | None:
    """Return a solved copy of the puzzle, or None if it has no solution."""
    grid = [list(row) for row in puzzle]
    return grid if _fill(grid) else None


class Sudoku(Service):
    """Answers a puzzle in row-major dotted form with its solution."""

    def query(self, q: str) -> list[str]:
        solution = solve(parse_puzzle(q))
        if solution is None:
            raise QueryError("puzzle could not be solved.")
        return [f'{q} {TTL} TXT "{format_puzzle(solution)}"']

    def dump(self) -> bytes | None:
        return None