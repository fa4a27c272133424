from .base import DuelAgent
from .heuristic_agent import HeuristicDuelAgent
from .random_agent import RandomDuelAgent

__all__ = [
    "DuelAgent",
    "HeuristicDuelAgent",
    "RandomDuelAgent",
]
