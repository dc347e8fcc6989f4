from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from sqlalchemy.orm import Session

from salesconfig.metrics import (
    observe_module_config_cache_hit,
    observe_module_config_cache_miss,
    observe_module_config_resolution,
)
from salesconfig.moduleconfig.schemas import ModuleConfig
from salesconfig.moduleconfig.store import ModuleConfigStore
from salesconfig.otel import get_tracer


logger = logging.getLogger("salesconfig.moduleconfig.resolver")
tracer = get_tracer("salesconfig.moduleconfig")


@dataclass(frozen=True, slots=True)
class ConfigScope:
    """One level of the lookup chain; ``project_id=None`` addresses the global default."""

    name: str
    project_id: str | None


ScopeChain = Callable[[str | None], Sequence[ConfigScope]]


def project_then_global(project_id: str | None) -> list[ConfigScope]:
    scopes: list[ConfigScope] = []
    if project_id:
        scopes.append(ConfigScope(name="project", project_id=project_id))
    scopes.append(ConfigScope(name="global", project_id=None))
    return scopes


class ModuleConfigResolver(Protocol):
    def resolve(self, session: Session, project_id: str | None, module_id: str) -> ModuleConfig | None:
        ...

    def invalidate(self, module_id: str | None = None) -> None:
        ...


class ConfigResolver:
    """Walk the scope chain and return the first non-deleted module config found.

    ``None`` means no document exists at any level. Callers treat it as "nothing to
    resolve against", not as a failure. Store errors propagate untouched.
    """

    def __init__(self, store: ModuleConfigStore | None = None, *, scope_chain: ScopeChain = project_then_global) -> None:
        self._store = store or ModuleConfigStore()
        self._scope_chain = scope_chain

    def resolve(self, session: Session, project_id: str | None, module_id: str) -> ModuleConfig | None:
        with tracer.start_as_current_span("module_config.resolve") as span:
            span.set_attribute("module_id", module_id)
            if project_id:
                span.set_attribute("project_id", project_id)

            for scope in self._scope_chain(project_id):
                config = self._store.find_one(session, module_id=module_id, project_id=scope.project_id)
                if config is None:
                    continue
                span.set_attribute("module_config.source", scope.name)
                observe_module_config_resolution(scope.name)
                logger.debug(
                    "module_config.resolved",
                    extra={
                        "project_id": project_id,
                        "module_id": module_id,
                        "source": scope.name,
                        "config_name": config.config_name,
                    },
                )
                return config

            span.set_attribute("module_config.source", "not_found")
            observe_module_config_resolution("not_found")
            logger.warning(
                "module_config.not_found",
                extra={"project_id": project_id, "module_id": module_id},
            )
            return None

    def invalidate(self, module_id: str | None = None) -> None:
        return None


class CachingConfigResolver:
    """Memoizes another resolver per (project, module); writes must call ``invalidate``."""

    def __init__(self, inner: ModuleConfigResolver | None = None) -> None:
        self._inner = inner or ConfigResolver()
        self._entries: dict[tuple[str | None, str], ModuleConfig | None] = {}
        self._generation = 0
        self._lock = Lock()

    def resolve(self, session: Session, project_id: str | None, module_id: str) -> ModuleConfig | None:
        key = (project_id or None, module_id)
        with self._lock:
            if key in self._entries:
                observe_module_config_cache_hit()
                return self._entries[key]
            generation = self._generation

        observe_module_config_cache_miss()
        config = self._inner.resolve(session, project_id, module_id)
        with self._lock:
            # A write landed while resolving; the result may predate it.
            if generation == self._generation:
                self._entries[key] = config
        return config

    def invalidate(self, module_id: str | None = None) -> None:
        with self._lock:
            self._generation += 1
            if module_id is None:
                self._entries.clear()
            else:
                for key in [key for key in self._entries if key[1] == module_id]:
                    del self._entries[key]
        self._inner.invalidate(module_id)


_RESOLVER: ModuleConfigResolver = ConfigResolver()
_RESOLVER_LOCK = Lock()


def get_config_resolver() -> ModuleConfigResolver:
    """Get the active module config resolver."""

    return _RESOLVER


def set_config_resolver(resolver: ModuleConfigResolver) -> None:
    """Replace the active module config resolver."""

    global _RESOLVER
    with _RESOLVER_LOCK:
        _RESOLVER = resolver
