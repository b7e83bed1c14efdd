"""In-process collaborators for the engine and the repository."""

from .memory import InMemoryEngine, InMemoryRepository

__all__ = ["InMemoryEngine", "InMemoryRepository"]
