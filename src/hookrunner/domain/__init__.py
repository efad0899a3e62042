from .types import Interpreter, ResolvedScript, HabitatLease, Event

__all__ = ["Interpreter", "ResolvedScript", "HabitatLease", "Event"]
