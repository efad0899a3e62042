# src/hookrunner/domain/types.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


class Interpreter(str, Enum):
    ENGINE = "engine"
    SHELL = "shell"


@dataclass(frozen=True, slots=True)
class ResolvedScript:
    kind: Interpreter
    path: Path


@dataclass(frozen=True, slots=True)
class HabitatLease:
    id: int
    path: Path


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Mapping[str, Any]
    source: str
    ts: float
