"""CLI commands for floor-twin."""

from floor_twin.cli.simulate import simulate
from floor_twin.cli.topology import topology

__all__ = [
    "simulate",
    "topology",
]
