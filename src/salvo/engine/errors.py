"""Exceptions raised by the salvo engine."""

from __future__ import annotations


class InvalidPlacement(ValueError):
    """A ship placement was out of bounds, overlapping, or touching another ship."""


class PlacementExhausted(RuntimeError):
    """Random fleet setup ran out of attempts for one ship."""

    def __init__(self, ship_type: str, attempts: int) -> None:
        super().__init__(f"Could not place {ship_type} after {attempts} attempts.")
        self.ship_type = ship_type
        self.attempts = attempts
