"""Persistence layer: repository protocols and their implementations."""

from .base import AssignmentRepository, TemplateRepository
from .memory import InMemoryStore
from .redis_store import RedisStore

__all__ = [
    "AssignmentRepository",
    "InMemoryStore",
    "RedisStore",
    "TemplateRepository",
]
