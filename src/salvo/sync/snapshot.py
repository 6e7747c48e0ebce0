"""Plain-data board snapshots and ship reconstruction.

A board is shared with the remote side once, before the first attack. The
snapshot keeps each cell's ``ship_id`` and ``ship_type`` so that
:func:`extract_ships_from_board` can rebuild the fleet from the grid alone.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, model_validator

from salvo.engine.board import Board, Cell, CellStatus
from salvo.engine.ship import Coordinate, Orientation, Ship, ShipType


class CellModel(BaseModel):
    row: int
    col: int
    status: CellStatus = CellStatus.EMPTY
    ship_id: str | None = None
    ship_type: ShipType | None = None

    @model_validator(mode="after")
    def _ship_cells_need_an_id(self) -> "CellModel":
        if self.status is CellStatus.SHIP and self.ship_id is None:
            raise ValueError(f"Ship cell ({self.row}, {self.col}) has no ship_id.")
        return self

    @classmethod
    def from_cell(cls, cell: Cell) -> "CellModel":
        return cls(
            row=cell.coordinate.row,
            col=cell.coordinate.col,
            status=cell.status,
            ship_id=cell.ship_id,
            ship_type=cell.ship_type,
        )

    def to_cell(self) -> Cell:
        return Cell(
            coordinate=Coordinate(self.row, self.col),
            status=self.status,
            ship_id=self.ship_id,
            ship_type=self.ship_type,
        )


class BoardModel(BaseModel):
    """Serializable square grid."""

    cells: list[list[CellModel]]

    @model_validator(mode="after")
    def _square_and_indexed(self) -> "BoardModel":
        size = len(self.cells)
        for row_index, row in enumerate(self.cells):
            if len(row) != size:
                raise ValueError(f"Row {row_index} has {len(row)} cells, expected {size}.")
            for col_index, cell in enumerate(row):
                if (cell.row, cell.col) != (row_index, col_index):
                    raise ValueError(
                        f"Cell at [{row_index}][{col_index}] claims ({cell.row}, {cell.col})."
                    )
        return self

    @classmethod
    def from_board(cls, board: Board) -> "BoardModel":
        return cls(cells=[[CellModel.from_cell(cell) for cell in row] for row in board.cells])

    def to_board(self) -> Board:
        return Board(cells=tuple(tuple(cell.to_cell() for cell in row) for row in self.cells))


def board_to_data(board: Board) -> list[list[dict[str, Any]]]:
    """Dump ``board`` to JSON-compatible nested lists."""
    return BoardModel.from_board(board).model_dump(mode="json")["cells"]


def board_from_data(data: list[list[dict[str, Any]]]) -> Board:
    """Inverse of :func:`board_to_data`; raises pydantic ``ValidationError`` on bad input."""
    return BoardModel.model_validate({"cells": data}).to_board()


def extract_ships_from_board(board: Board) -> list[Ship]:
    """Rebuild the ship list of ``board`` from its cells.

    Ships come out in order of their first cell (row-major). Length, hits and
    orientation are counted from the grid; the id is never parsed.
    """
    positions: dict[str, list[Coordinate]] = {}
    hits: dict[str, int] = {}
    types: dict[str, ShipType | None] = {}
    for cell in board.iter_cells():
        if cell.ship_id is None:
            continue
        positions.setdefault(cell.ship_id, []).append(cell.coordinate)
        hits[cell.ship_id] = hits.get(cell.ship_id, 0) + (cell.status is CellStatus.HIT)
        if types.get(cell.ship_id) is None:
            types[cell.ship_id] = cell.ship_type

    ships = []
    for ship_id, position in positions.items():
        orientation = Orientation.HORIZONTAL
        if len(position) > 1 and position[0].row != position[1].row:
            orientation = Orientation.VERTICAL
        ships.append(
            Ship(
                id=ship_id,
                ship_type=types[ship_id] or ShipType.for_length(len(position)),
                length=len(position),
                position=tuple(position),
                orientation=orientation,
                hits=hits[ship_id],
            )
        )
    return ships
