"""Grid model and placement validation for the salvo engine."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator, Mapping

from .ship import BOARD_SIZE, Coordinate, Orientation, ShipType


class CellStatus(Enum):
    """Occupancy and attack status of a single cell."""

    EMPTY = "empty"
    SHIP = "ship"
    HIT = "hit"
    MISS = "miss"

    @property
    def attacked(self) -> bool:
        return self in (CellStatus.HIT, CellStatus.MISS)


@dataclass(frozen=True)
class Cell:
    """One board position."""

    coordinate: Coordinate
    status: CellStatus = CellStatus.EMPTY
    ship_id: str | None = None
    ship_type: ShipType | None = None


@dataclass(frozen=True)
class Board:
    """Square grid of cells indexed by ``(row, col)``.

    Boards are values: every change produces a new board, so two fleets can
    never end up aliasing the same grid.
    """

    cells: tuple[tuple[Cell, ...], ...]

    @property
    def size(self) -> int:
        return len(self.cells)

    def contains(self, coord: Coordinate) -> bool:
        """Check whether a coordinate lies inside the board boundaries."""
        return 0 <= coord.row < self.size and 0 <= coord.col < self.size

    def cell(self, coord: Coordinate) -> Cell:
        if not self.contains(coord):
            raise ValueError(f"Coordinate ({coord.row}, {coord.col}) is off the board.")
        return self.cells[coord.row][coord.col]

    def status(self, coord: Coordinate) -> CellStatus:
        return self.cell(coord).status

    def is_attacked(self, coord: Coordinate) -> bool:
        return self.cell(coord).status.attacked

    def iter_cells(self) -> Iterator[Cell]:
        """Yield every cell in row-major order."""
        for row in self.cells:
            yield from row

    def unattacked(self) -> list[Coordinate]:
        """Return all coordinates that have not been fired at yet."""
        return [cell.coordinate for cell in self.iter_cells() if not cell.status.attacked]

    def replace_cells(self, updates: Mapping[Coordinate, Cell]) -> Board:
        """Return a new board with the given cells swapped in."""
        if not updates:
            return self
        rows = [list(row) for row in self.cells]
        for coord, cell in updates.items():
            rows[coord.row][coord.col] = cell
        return Board(cells=tuple(tuple(row) for row in rows))

    def with_status(self, coord: Coordinate, status: CellStatus) -> Board:
        return self.replace_cells({coord: replace(self.cell(coord), status=status)})


def create_board(size: int = BOARD_SIZE) -> Board:
    """Build an all-empty ``size`` x ``size`` board."""
    return Board(
        cells=tuple(
            tuple(Cell(Coordinate(row, col)) for col in range(size)) for row in range(size)
        )
    )


def is_valid_placement(
    board: Board,
    start: Coordinate,
    length: int,
    orientation: Orientation,
    allow_adjacent: bool = False,
) -> bool:
    """Determine whether a run of ``length`` cells can be placed at ``start``.

    The run must stay on the board and cover only empty cells. Without
    ``allow_adjacent`` every cell of the run, not just its ends, must also have
    an empty 8-neighbourhood, so ships never touch, diagonally included.
    """
    run = orientation.run(start, length)
    if not all(board.contains(coord) for coord in run):
        return False
    if any(board.status(coord) is not CellStatus.EMPTY for coord in run):
        return False
    if allow_adjacent:
        return True

    for coord in run:
        for delta_row in (-1, 0, 1):
            for delta_col in (-1, 0, 1):
                neighbour = Coordinate(coord.row + delta_row, coord.col + delta_col)
                if not board.contains(neighbour):
                    continue
                if board.status(neighbour) is not CellStatus.EMPTY:
                    return False
    return True
