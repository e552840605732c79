"""Scripted scenarios and randomized interleavings over the ledger."""

from .interleaving import InterleavingResult, RandomInterleavingRunner, summarize_runs
from .runner import SimulationResult, SimulationRunner, run_scenario

__all__ = [
    "InterleavingResult",
    "RandomInterleavingRunner",
    "SimulationResult",
    "SimulationRunner",
    "run_scenario",
    "summarize_runs",
]
