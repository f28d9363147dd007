"""
Repositories - Data access layer for database operations.
"""

from recipe_assistant.models.repositories.workstate_repository import (
    InMemoryWorkstateRepository,
    WorkstateRepository,
    WorkstateStore,
)

__all__ = ["InMemoryWorkstateRepository", "WorkstateRepository", "WorkstateStore"]
