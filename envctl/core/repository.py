"""
Environment repository — the keyed store the orchestrator reads and writes.

The repository owns thread-safety of the environment map; the
orchestrator never locks around it. Keys are environment ids and name
lookups are case-insensitive exact matches.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from envctl.core.models.environment import Environment
from envctl.core.models.environment_type import EnvironmentType

logger = logging.getLogger(__name__)


class EnvironmentRepository(ABC):
    """Storage contract for environments."""

    @abstractmethod
    def save(self, environment: Environment) -> None:
        """Insert or replace the environment stored under its id."""

    @abstractmethod
    def find_by_id(self, env_id: str) -> Environment | None:
        """Look up by id."""

    @abstractmethod
    def find_by_name(self, name: str) -> Environment | None:
        """Look up by name, ignoring case."""

    @abstractmethod
    def find_all(self) -> list[Environment]:
        """All environments in insertion order."""

    @abstractmethod
    def delete(self, env_id: str) -> None:
        """Remove by id. No-op when absent."""

    @abstractmethod
    def exists(self, env_id: str) -> bool:
        """Whether an environment with this id is stored."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored environments."""

    def find_by_type(self, env_type: EnvironmentType) -> list[Environment]:
        return [env for env in self.find_all() if env.type == env_type]


class InMemoryEnvironmentRepository(EnvironmentRepository):
    """Process-local repository backed by a dict and a lock."""

    def __init__(self, environments: list[Environment] | None = None) -> None:
        self._lock = threading.RLock()
        self._environments: dict[str, Environment] = {}
        for env in environments or []:
            self.save(env)

    def save(self, environment: Environment) -> None:
        with self._lock:
            self._environments[environment.id] = environment
        logger.debug("Saved environment %s (%s)", environment.name, environment.id)

    def find_by_id(self, env_id: str) -> Environment | None:
        with self._lock:
            return self._environments.get(env_id)

    def find_by_name(self, name: str) -> Environment | None:
        needle = name.casefold()
        with self._lock:
            for env in self._environments.values():
                if env.name.casefold() == needle:
                    return env
        return None

    def find_all(self) -> list[Environment]:
        with self._lock:
            return list(self._environments.values())

    def delete(self, env_id: str) -> None:
        with self._lock:
            self._environments.pop(env_id, None)

    def exists(self, env_id: str) -> bool:
        with self._lock:
            return env_id in self._environments

    def count(self) -> int:
        with self._lock:
            return len(self._environments)
