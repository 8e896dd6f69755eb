"""Shared fixtures: an in-memory store wired into the template and assignment stores."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from accesscore.permissions import AssignmentStore, PermissionResolver, TemplateStore
from accesscore.stores import InMemoryStore


class InterleavingRepository:
    """Delegates to a store, running ``hook`` once right before the first ``method`` call.

    Lets a test land a competing write between a caller's read and its write.
    """

    def __init__(self, inner: Any, method: str, hook: Callable[[], Any]) -> None:
        self._inner = inner
        self._method = method
        self._hook: Callable[[], Any] | None = hook

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if name != self._method or self._hook is None:
            return attr
        hook, self._hook = self._hook, None

        def call(*args: Any, **kwargs: Any) -> Any:
            hook()
            return attr(*args, **kwargs)

        return call


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def templates(store: InMemoryStore) -> TemplateStore:
    return TemplateStore(store)


@pytest.fixture
def assignments(store: InMemoryStore) -> AssignmentStore:
    return AssignmentStore(store, store)


@pytest.fixture
def resolver(store: InMemoryStore) -> PermissionResolver:
    return PermissionResolver(store, store)


@pytest.fixture
def interleave(store: InMemoryStore) -> Callable[[str, Callable[[], Any]], InterleavingRepository]:
    def wrap(method: str, hook: Callable[[], Any]) -> InterleavingRepository:
        return InterleavingRepository(store, method, hook)

    return wrap
