"""Lookup of tutorials by slug."""

from typing import Dict, List, Type

from .tutorial import Tutorial

_REGISTRY: Dict[str, Type[Tutorial]] = {}


def register(cls: Type[Tutorial]) -> Type[Tutorial]:
    """Class decorator adding a tutorial to the registry."""
    if not cls.slug:
        raise ValueError(f"{cls.__name__} has no slug")
    existing = _REGISTRY.get(cls.slug)
    if existing is not None and existing is not cls:
        raise ValueError(f"Duplicate tutorial slug: {cls.slug}")
    _REGISTRY[cls.slug] = cls
    return cls


def get_tutorial(slug: str) -> Type[Tutorial]:
    try:
        return _REGISTRY[slug]
    except KeyError:
        known = ", ".join(sorted(_REGISTRY)) or "none"
        raise KeyError(f"Unknown tutorial '{slug}'. Known tutorials: {known}") from None


def list_tutorials() -> List[Type[Tutorial]]:
    return [_REGISTRY[slug] for slug in sorted(_REGISTRY)]
