"""Random and hunt/target targeting strategies.

Both strategies only read the defending fleet's board, and only the attack
status of its cells, so they never peek at ship positions. The hunt/target
strategy keeps its state in an immutable :class:`AIMemory` that the caller
threads through ``choose_smart`` and ``update_after_attack``:

* hunt mode fires at random un-attacked cells;
* the first hit switches to target mode and queues the orthogonal neighbours;
* once two hits line up, the queue is narrowed to that row or column;
* sinking the ship drops everything and goes back to hunting.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from enum import Enum

from salvo.engine.fleet import AttackOutcome, Fleet
from salvo.engine.ship import Coordinate

logger = logging.getLogger(__name__)


class AIMode(Enum):
    HUNT = "hunt"
    TARGET = "target"


@dataclass(frozen=True)
class AIMemory:
    """Hunt/target state carried between turns."""

    mode: AIMode = AIMode.HUNT
    target_queue: tuple[Coordinate, ...] = ()
    hits: tuple[Coordinate, ...] = ()
    last_hit: Coordinate | None = None


def choose_random(fleet: Fleet, rng: random.Random | None = None) -> Coordinate:
    """Pick a uniformly random cell of ``fleet`` that has not been attacked.

    Loops forever on a fully attacked board; the game is over long before that.
    """
    rng = rng or random.Random()
    board = fleet.board
    while True:
        coord = Coordinate(rng.randrange(board.size), rng.randrange(board.size))
        if not board.is_attacked(coord):
            return coord


def choose_smart(
    fleet: Fleet, memory: AIMemory, rng: random.Random | None = None
) -> tuple[Coordinate, AIMemory]:
    """Choose the next target with the hunt/target heuristic.

    Queued targets that went stale (off the board or already attacked) are
    skipped rather than fired at.
    """
    board = fleet.board
    if memory.mode is AIMode.TARGET:
        queue = list(memory.target_queue)
        while queue:
            coord = queue.pop(0)
            if board.contains(coord) and not board.is_attacked(coord):
                return coord, replace(memory, target_queue=tuple(queue))
            logger.debug("stale_target_skipped", extra={"row": coord.row, "col": coord.col})

    hunting = replace(memory, mode=AIMode.HUNT, target_queue=())
    return choose_random(fleet, rng), hunting


def candidate_neighbours(fleet: Fleet, coord: Coordinate) -> list[Coordinate]:
    """Orthogonal neighbours of ``coord`` that are on the board and not yet attacked."""
    board = fleet.board
    return [
        neighbour
        for neighbour in coord.neighbours()
        if board.contains(neighbour) and not board.is_attacked(neighbour)
    ]


def update_after_attack(
    memory: AIMemory,
    coord: Coordinate,
    outcome: AttackOutcome,
    fleet: Fleet,
) -> AIMemory:
    """Fold the outcome of an attack at ``coord`` into ``memory``.

    ``fleet`` is the defender after the attack was resolved.
    """
    if outcome is AttackOutcome.SUNK:
        return AIMemory()
    if outcome is not AttackOutcome.HIT:
        return memory

    hits = memory.hits + (coord,)
    candidates = candidate_neighbours(fleet, coord)

    if len(hits) >= 2:
        previous, latest = hits[-2], hits[-1]
        if previous.row == latest.row:
            queue = tuple(c for c in candidates if c.row == coord.row)
        elif previous.col == latest.col:
            queue = tuple(c for c in candidates if c.col == coord.col)
        else:
            queue = memory.target_queue + tuple(candidates)
    else:
        merged = list(memory.target_queue)
        for candidate in candidates:
            if candidate not in merged:
                merged.append(candidate)
        queue = tuple(merged)

    return AIMemory(mode=AIMode.TARGET, target_queue=queue, hits=hits, last_hit=coord)
