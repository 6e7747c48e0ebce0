"""Fleet setup, attack resolution and win detection."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum

from salvo.telemetry import get_meter, get_tracer

from .board import Board, Cell, CellStatus, create_board, is_valid_placement
from .errors import InvalidPlacement, PlacementExhausted
from .ship import BOARD_SIZE, Coordinate, Orientation, Ship, ShipType

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.fleet")
meter = get_meter("salvo.engine.fleet")

PLACEMENT_COUNTER = meter.create_counter(
    "salvo_engine_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

ATTACK_COUNTER = meter.create_counter(
    "salvo_engine_attacks",
    unit="1",
    description="Attacks resolved against a fleet",
)

MAX_PLACEMENT_ATTEMPTS = 100


class AttackOutcome(Enum):
    """Result of resolving one attack."""

    HIT = "hit"
    MISS = "miss"
    SUNK = "sunk"
    ALREADY_ATTACKED = "already-attacked"

    @property
    def counts_as_move(self) -> bool:
        return self is not AttackOutcome.ALREADY_ATTACKED


@dataclass(frozen=True)
class Fleet:
    """One side of a match: its board, ships and identity."""

    id: str
    name: str
    board: Board = field(default_factory=create_board)
    ships: tuple[Ship, ...] = ()
    is_computer: bool = False
    ship_serial: int = 0

    def ship(self, ship_id: str) -> Ship | None:
        for ship in self.ships:
            if ship.id == ship_id:
                return ship
        return None

    def remaining_ships(self) -> list[Ship]:
        return [ship for ship in self.ships if not ship.sunk]


def create_fleet(
    fleet_id: str, name: str, is_computer: bool = False, size: int = BOARD_SIZE
) -> Fleet:
    """Create an empty fleet with a fresh board."""
    return Fleet(id=fleet_id, name=name, board=create_board(size), is_computer=is_computer)


def place_ship(
    fleet: Fleet,
    ship_type: ShipType,
    start: Coordinate,
    orientation: Orientation,
    allow_adjacent: bool = False,
) -> Fleet:
    """Return a new fleet with ``ship_type`` placed at ``start``.

    Raises :class:`InvalidPlacement` without touching ``fleet`` when the run is
    off the board, overlaps, or touches another ship while adjacency is
    disallowed.
    """
    with tracer.start_as_current_span("fleet.place_ship") as span:
        length = ship_type.length
        span.set_attribute("ship.type", ship_type.value)
        span.set_attribute("ship.length", length)
        span.set_attribute("ship.start.row", start.row)
        span.set_attribute("ship.start.col", start.col)
        span.set_attribute("fleet.id", fleet.id)
        if not is_valid_placement(fleet.board, start, length, orientation, allow_adjacent):
            PLACEMENT_COUNTER.add(1, attributes={"result": "failed", "fleet": fleet.id})
            logger.warning(
                "ship_placement_failed",
                extra={
                    "fleet": fleet.id,
                    "ship_type": ship_type.value,
                    "orientation": orientation.value,
                    "row": start.row,
                    "col": start.col,
                },
            )
            raise InvalidPlacement(
                f"Cannot place {ship_type.value} at ({start.row}, {start.col}) {orientation.value}."
            )

        serial = fleet.ship_serial + 1
        ship_id = f"ship-{serial}"
        run = tuple(orientation.run(start, length))
        board = fleet.board.replace_cells(
            {
                coord: Cell(coord, CellStatus.SHIP, ship_id=ship_id, ship_type=ship_type)
                for coord in run
            }
        )
        ship = Ship(
            id=ship_id,
            ship_type=ship_type,
            length=length,
            position=run,
            orientation=orientation,
        )
        PLACEMENT_COUNTER.add(1, attributes={"result": "success", "fleet": fleet.id})
        logger.info(
            "ship_placed",
            extra={
                "fleet": fleet.id,
                "ship_id": ship_id,
                "ship_type": ship_type.value,
                "orientation": orientation.value,
                "row": start.row,
                "col": start.col,
            },
        )
        return replace(fleet, board=board, ships=fleet.ships + (ship,), ship_serial=serial)


def place_ships_randomly(
    fleet: Fleet,
    allow_adjacent: bool = False,
    rng: random.Random | None = None,
    max_attempts: int = MAX_PLACEMENT_ATTEMPTS,
) -> Fleet:
    """Clear ``fleet`` and place one ship of each type at random.

    Each ship gets at most ``max_attempts`` random (start, orientation) draws;
    running out raises :class:`PlacementExhausted`.
    """
    rng = rng or random.Random()
    with tracer.start_as_current_span("fleet.place_ships_randomly") as span:
        span.set_attribute("fleet.id", fleet.id)
        span.set_attribute("allow_adjacent", allow_adjacent)
        size = fleet.board.size
        current = replace(fleet, board=create_board(size), ships=())
        for ship_type in ShipType:
            for attempt in range(1, max_attempts + 1):
                start = Coordinate(rng.randrange(size), rng.randrange(size))
                orientation = (
                    Orientation.HORIZONTAL if rng.random() < 0.5 else Orientation.VERTICAL
                )
                if is_valid_placement(
                    current.board, start, ship_type.length, orientation, allow_adjacent
                ):
                    current = place_ship(current, ship_type, start, orientation, allow_adjacent)
                    logger.debug(
                        "random_ship_placed",
                        extra={
                            "ship_type": ship_type.value,
                            "attempts": attempt,
                            "fleet": fleet.id,
                        },
                    )
                    break
            else:
                logger.error(
                    "random_placement_exhausted",
                    extra={"ship_type": ship_type.value, "attempts": max_attempts, "fleet": fleet.id},
                )
                raise PlacementExhausted(ship_type.value, max_attempts)
        return current


def receive_attack(fleet: Fleet, coord: Coordinate) -> tuple[Fleet, AttackOutcome]:
    """Resolve one attack against ``fleet``.

    A cell that was already fired at yields ``ALREADY_ATTACKED`` and the very
    same fleet object; otherwise exactly one cell changes.
    """
    with tracer.start_as_current_span("fleet.receive_attack") as span:
        span.set_attribute("attack.row", coord.row)
        span.set_attribute("attack.col", coord.col)
        span.set_attribute("fleet.id", fleet.id)
        if not fleet.board.contains(coord):
            logger.error(
                "attack_out_of_bounds",
                extra={"row": coord.row, "col": coord.col, "fleet": fleet.id},
            )
            raise ValueError("Attack out of bounds.")

        cell = fleet.board.cell(coord)
        if cell.status.attacked:
            outcome = AttackOutcome.ALREADY_ATTACKED
            span.set_attribute("attack.outcome", outcome.value)
            logger.debug(
                "attack_repeated",
                extra={"row": coord.row, "col": coord.col, "fleet": fleet.id},
            )
            return fleet, outcome

        if cell.status is CellStatus.EMPTY:
            board = fleet.board.with_status(coord, CellStatus.MISS)
            updated = replace(fleet, board=board)
            outcome = AttackOutcome.MISS
        else:
            ships = list(fleet.ships)
            index = next((i for i, ship in enumerate(ships) if ship.id == cell.ship_id), None)
            if index is None:
                logger.error(
                    "attack_hit_unknown_ship",
                    extra={
                        "row": coord.row,
                        "col": coord.col,
                        "ship_id": cell.ship_id,
                        "fleet": fleet.id,
                    },
                )
                raise ValueError(f"Cell {coord} belongs to unknown ship {cell.ship_id!r}.")
            ships[index] = ships[index].with_hit()
            outcome = AttackOutcome.SUNK if ships[index].sunk else AttackOutcome.HIT
            board = fleet.board.with_status(coord, CellStatus.HIT)
            updated = replace(fleet, board=board, ships=tuple(ships))

        span.set_attribute("attack.outcome", outcome.value)
        ATTACK_COUNTER.add(1, attributes={"outcome": outcome.value, "fleet": fleet.id})
        logger.info(
            "attack_resolved",
            extra={
                "row": coord.row,
                "col": coord.col,
                "outcome": outcome.value,
                "ship_id": cell.ship_id,
                "fleet": fleet.id,
            },
        )
        return updated, outcome


def check_win(fleet: Fleet) -> bool:
    """Return True once every ship of ``fleet`` is sunk (vacuously for no ships)."""
    return all(ship.sunk for ship in fleet.ships)
