# dbdrift/comparators/registry.py
from __future__ import annotations
from typing import Dict, List, Type
from .interface import Comparator, ConfigurationError

_REGISTRY: Dict[str, Type[Comparator]] = {}


def _norm(name: str) -> str:
    return (name or "").strip().lower()


def register(name: str, cls: Type[Comparator]) -> None:
    key = _norm(name)
    if not key:
        raise ValueError("Comparator name must be non-empty")
    _REGISTRY[key] = cls


def get(name: str) -> Type[Comparator] | None:
    return _REGISTRY.get(_norm(name))


def create(name: str) -> Comparator:
    cls = get(name)
    if cls is None:
        raise ConfigurationError(f"Unknown comparator '{name}'. Available: {names()}")
    return cls()


def names() -> List[str]:
    return sorted(_REGISTRY.keys())


def available() -> Dict[str, Type[Comparator]]:
    return dict(_REGISTRY)
