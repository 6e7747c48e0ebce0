"""Computer opponent strategies."""

from .hunt_target import AIMemory, AIMode, choose_random, choose_smart, update_after_attack
from .opponent import ComputerOpponent, Strategy

__all__ = [
    "AIMemory",
    "AIMode",
    "ComputerOpponent",
    "Strategy",
    "choose_random",
    "choose_smart",
    "update_after_attack",
]
