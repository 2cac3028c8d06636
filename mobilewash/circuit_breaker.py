# mobilewash/circuit_breaker.py
"""
Named circuit breakers (CLOSED -> OPEN -> HALF_OPEN -> CLOSED) and a registry.

A breaker opens after `failure_threshold` consecutive failures. While open,
calls fail fast (or return the fallback) until `recovery_timeout` seconds have
passed since the last failure; the next call then runs in HALF_OPEN and its
outcome closes or re-opens the circuit.

Env vars:
- CIRCUIT_BREAKER_ENABLED (default: true)
- CIRCUIT_FAILURE_THRESHOLD (default: 5)
- CIRCUIT_RECOVERY_SECONDS (default: 60)
"""

import os
import time
import threading
import functools
from enum import Enum
from typing import Any, Callable, Dict, Optional

from mobilewash import monitoring

CIRCUIT_BREAKER_ENABLED = os.getenv("CIRCUIT_BREAKER_ENABLED", "true").lower() in ("1", "true", "yes")
DEFAULT_FAILURE_THRESHOLD = int(os.getenv("CIRCUIT_FAILURE_THRESHOLD", "5"))
DEFAULT_RECOVERY_TIMEOUT = float(os.getenv("CIRCUIT_RECOVERY_SECONDS", "60"))


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreakerError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, message: str, last_failure_time: Optional[float] = None):
        super().__init__(message)
        self.last_failure_time = last_failure_time


class CircuitBreaker:
    def __init__(self, name: str,
                 failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
                 recovery_timeout: float = DEFAULT_RECOVERY_TIMEOUT,
                 is_failure: Optional[Callable[[BaseException], bool]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        # Exceptions rejected by is_failure propagate without touching the counters
        self.is_failure = is_failure or (lambda exc: True)
        self._clock = clock
        self._lock = threading.Lock()

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.total_requests = 0
        self.total_failures = 0
        self.total_successes = 0
        monitoring.set_circuit_state(self.name, self.state.value)

    def _set_state(self, state: CircuitState):
        if state != self.state:
            monitoring.logger.info(
                "Circuit breaker state change",
                extra={"circuit": self.name, "from": self.state.value, "to": state.value},
            )
        self.state = state
        monitoring.set_circuit_state(self.name, state.value)

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return self._clock() - self.last_failure_time > self.recovery_timeout

    def _before_call(self) -> bool:
        """Returns False when the call must be short-circuited."""
        with self._lock:
            if self.state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._set_state(CircuitState.HALF_OPEN)
                else:
                    return False
            self.total_requests += 1
            return True

    def _on_success(self):
        with self._lock:
            self.failure_count = 0
            self.success_count += 1
            self.total_successes += 1
            if self.state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED)

    def _on_failure(self, exc: BaseException):
        with self._lock:
            self.failure_count += 1
            self.total_failures += 1
            self.last_failure_time = self._clock()
            monitoring.logger.warning(
                "Circuit breaker recorded failure",
                extra={"circuit": self.name, "failure_count": self.failure_count, "error": str(exc)},
            )
            if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
                if self.state != CircuitState.OPEN:
                    monitoring.logger.error(
                        f"Circuit breaker {self.name} opened due to {self.failure_count} failures"
                    )
                self._set_state(CircuitState.OPEN)

    def call(self, fn: Callable[..., Any], *args,
             fallback: Optional[Callable[[], Any]] = None, **kwargs) -> Any:
        """Run fn under circuit protection."""
        if not self._before_call():
            if fallback is not None:
                return fallback()
            raise CircuitBreakerError(
                f"Circuit breaker {self.name} is OPEN", self.last_failure_time
            )
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            if not self.is_failure(exc):
                # The upstream answered; a client mistake does not make it unhealthy
                self._on_success()
                raise
            self._on_failure(exc)
            if fallback is not None:
                return fallback()
            raise
        self._on_success()
        return result

    def status(self) -> Dict[str, Any]:
        with self._lock:
            uptime = (
                (self.total_successes / self.total_requests) * 100
                if self.total_requests > 0 else 100
            )
            return {
                "name": self.name,
                "state": self.state.value,
                "failure_count": self.failure_count,
                "success_count": self.success_count,
                "config": {
                    "failure_threshold": self.failure_threshold,
                    "recovery_timeout": self.recovery_timeout,
                },
                "stats": {
                    "total_requests": self.total_requests,
                    "total_failures": self.total_failures,
                    "total_successes": self.total_successes,
                },
                "uptime": uptime,
            }

    def reset(self):
        with self._lock:
            self._set_state(CircuitState.CLOSED)
            self.failure_count = 0
            self.success_count = 0
            self.last_failure_time = None


class CircuitBreakerRegistry:
    """Thread-safe map of circuit name -> CircuitBreaker."""

    def __init__(self, **defaults):
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._defaults = defaults
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._breakers)

    def __contains__(self, name: str) -> bool:
        return name in self._breakers

    def create(self, name: str, **config) -> CircuitBreaker:
        """Create (or replace) the breaker registered under name."""
        merged = {**self._defaults, **config}
        breaker = CircuitBreaker(name, **merged)
        with self._lock:
            self._breakers[name] = breaker
        return breaker

    def get(self, name: str) -> Optional[CircuitBreaker]:
        return self._breakers.get(name)

    def get_or_create(self, name: str, **config) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(name, **{**self._defaults, **config})
                self._breakers[name] = breaker
            return breaker

    def call(self, name: str, fn: Callable[..., Any], *args,
             fallback: Optional[Callable[[], Any]] = None, **kwargs) -> Any:
        return self.get_or_create(name).call(fn, *args, fallback=fallback, **kwargs)

    def wrap(self, name: str, **config) -> Callable:
        """Decorator form: @registry.wrap("openrouter")."""
        breaker = self.create(name, **config)

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            @functools.wraps(fn)
            def wrapper(*args, **kwargs):
                return breaker.call(fn, *args, **kwargs)
            return wrapper

        return decorator

    def get_status(self, name: str) -> Optional[Dict[str, Any]]:
        breaker = self.get(name)
        return breaker.status() if breaker else None

    def get_all_statuses(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {b.name: b.status() for b in breakers}

    def reset(self, name: str) -> bool:
        breaker = self.get(name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all(self):
        with self._lock:
            breakers = list(self._breakers.values())
        for b in breakers:
            b.reset()

    def clear(self):
        """Drop every breaker (useful for tests)."""
        with self._lock:
            self._breakers.clear()


# Process-wide registry used by the provider connectors
registry = CircuitBreakerRegistry()


def protected_call(name: str, fn: Callable[..., Any], *args,
                   is_failure: Optional[Callable[[BaseException], bool]] = None,
                   **kwargs) -> Any:
    """Run fn through the named breaker, or directly when breakers are disabled."""
    if not CIRCUIT_BREAKER_ENABLED:
        return fn(*args, **kwargs)
    config = {"is_failure": is_failure} if is_failure else {}
    return registry.get_or_create(name, **config).call(fn, *args, **kwargs)
