"""Battleship rules engine, computer opponent and match reconciliation."""

__version__ = "0.1.0"
