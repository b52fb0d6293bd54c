"""ETA heuristic engine."""

from .engine import EtaEngine, EtaHeuristics, get_eta_engine

__all__ = ["EtaEngine", "EtaHeuristics", "get_eta_engine"]
