"""
DeploymentNotifier — synchronous fan-out of lifecycle events.

Listeners are invoked in registration order on the caller's thread.
A listener that raises is logged and skipped; the remaining listeners
still run and the deployment itself is never affected.

Thread safety model
───────────────────
- ``_lock`` protects ``_listeners``, ``_seq`` and ``_buffer``.
- Dispatch iterates over a snapshot of the listener list taken under
  the lock, then calls listeners with the lock released, so a slow
  listener never blocks registration or other deployments.

Every dispatched event is also appended to a bounded ring buffer::

    {"seq": 3, "ts": 1739648400.1, "type": "deploy:start",
     "key": "<environment id>", "data": {...}}
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any

from envctl.core.models.environment import Environment
from envctl.core.models.service import Service
from envctl.core.observers.base import DeploymentObserver

logger = logging.getLogger(__name__)


class DeploymentNotifier:
    """Registry of listeners plus a replayable event log."""

    def __init__(self, *, buffer_size: int = 200) -> None:
        self._lock = threading.Lock()
        self._listeners: list[DeploymentObserver] = []
        self._seq = 0
        self._buffer: deque[dict[str, Any]] = deque(maxlen=buffer_size)

    # ── Registration ────────────────────────────────────────────

    def register(self, listener: DeploymentObserver) -> None:
        with self._lock:
            if listener in self._listeners:
                return
            self._listeners.append(listener)
        logger.debug("Registered deployment listener %s", type(listener).__name__)

    def unregister(self, listener: DeploymentObserver) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> list[DeploymentObserver]:
        with self._lock:
            return list(self._listeners)

    # ── Events ──────────────────────────────────────────────────

    def notify_start(self, environment: Environment, service: Service, version: str) -> None:
        self._dispatch(
            "deploy:start", environment, {"service": service.id, "version": version},
            "on_deployment_start", environment, service, version,
        )

    def notify_success(self, environment: Environment, service: Service, version: str) -> None:
        self._dispatch(
            "deploy:success", environment, {"service": service.id, "version": version},
            "on_deployment_success", environment, service, version,
        )

    def notify_failure(
        self,
        environment: Environment,
        service: Service,
        version: str,
        error: str,
    ) -> None:
        self._dispatch(
            "deploy:failure", environment,
            {"service": service.id, "version": version, "error": error},
            "on_deployment_failure", environment, service, version, error,
        )

    def notify_rollback(self, environment: Environment, service: Service) -> None:
        self._dispatch(
            "deploy:rollback", environment,
            {"service": service.id, "version": service.version},
            "on_rollback", environment, service,
        )

    # ── Event log ───────────────────────────────────────────────

    @property
    def seq(self) -> int:
        with self._lock:
            return self._seq

    def events(self, since: int = 0) -> list[dict[str, Any]]:
        """Buffered events with ``seq > since``, oldest first."""
        with self._lock:
            return [e for e in self._buffer if e["seq"] > since]

    # ── Internals ───────────────────────────────────────────────

    def _dispatch(
        self,
        event_type: str,
        environment: Environment,
        data: dict[str, Any],
        hook: str,
        *args: Any,
    ) -> None:
        with self._lock:
            self._seq += 1
            self._buffer.append({
                "seq": self._seq,
                "ts": time.time(),
                "type": event_type,
                "key": environment.id,
                "data": data,
            })
            listeners = list(self._listeners)

        logger.debug("event %s key=%s listeners=%d", event_type, environment.id, len(listeners))

        for listener in listeners:
            try:
                getattr(listener, hook)(*args)
            except Exception:
                logger.exception(
                    "Listener %s failed on %s for %s",
                    type(listener).__name__, event_type, environment.name,
                )
