"""Model package for the Physarum simulation."""

from .state import Agent, FieldStats, FieldSnapshot
from .grid import Grid, wrap, bilinear_sample
from .attraction import random_attraction_table, combine
from .agent import AgentSwarm, pick_direction
from .engine import Model, ModelPhase

__all__ = [
    'Agent',
    'FieldStats',
    'FieldSnapshot',
    'Grid',
    'wrap',
    'bilinear_sample',
    'random_attraction_table',
    'combine',
    'AgentSwarm',
    'pick_direction',
    'Model',
    'ModelPhase',
]
