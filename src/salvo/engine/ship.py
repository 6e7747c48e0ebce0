"""Ship domain model for the salvo engine."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

BOARD_SIZE = 10


@dataclass(frozen=True, order=True)
class Coordinate:
    """Immutable board coordinate."""

    row: int
    col: int

    def neighbours(self) -> tuple[Coordinate, ...]:
        """Return the orthogonal neighbours in up, down, left, right order."""
        return (
            Coordinate(self.row - 1, self.col),
            Coordinate(self.row + 1, self.col),
            Coordinate(self.row, self.col - 1),
            Coordinate(self.row, self.col + 1),
        )


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    def run(self, start: Coordinate, length: int) -> list[Coordinate]:
        """Return the ``length`` cells starting at ``start`` along this axis."""
        if self is Orientation.HORIZONTAL:
            return [Coordinate(start.row, start.col + offset) for offset in range(length)]
        return [Coordinate(start.row + offset, start.col) for offset in range(length)]


class ShipType(Enum):
    """All supported ship classes, in fleet setup order."""

    CARRIER = "carrier"
    BATTLESHIP = "battleship"
    CRUISER = "cruiser"
    SUBMARINE = "submarine"
    DESTROYER = "destroyer"

    @property
    def length(self) -> int:
        """Return the number of contiguous cells the ship occupies."""
        return SHIP_LENGTHS[self]

    @classmethod
    def for_length(cls, length: int) -> ShipType | None:
        """Return the first ship class with the given length, if any."""
        for ship_type in cls:
            if ship_type.length == length:
                return ship_type
        return None


SHIP_LENGTHS: dict[ShipType, int] = {
    ShipType.CARRIER: 5,
    ShipType.BATTLESHIP: 4,
    ShipType.CRUISER: 3,
    ShipType.SUBMARINE: 3,
    ShipType.DESTROYER: 2,
}

FLEET_CELL_COUNT = sum(SHIP_LENGTHS.values())


@dataclass(frozen=True)
class Ship:
    """A placed vessel.

    ``hits`` only ever grows; ``sunk`` is derived from it so the two can never
    disagree.
    """

    id: str
    ship_type: ShipType | None
    length: int
    position: tuple[Coordinate, ...]
    orientation: Orientation = Orientation.HORIZONTAL
    hits: int = 0

    @property
    def sunk(self) -> bool:
        return self.hits >= self.length

    def occupies(self, coord: Coordinate) -> bool:
        """Return True if the coordinate is part of this ship's run."""
        return coord in self.position

    def with_hit(self) -> Ship:
        """Return a copy with one more hit recorded, capped at the length."""
        return replace(self, hits=min(self.hits + 1, self.length))
