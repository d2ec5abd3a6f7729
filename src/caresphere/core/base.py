"""CareSphere component base classes

Abstract base shared by every long-lived CareSphere component (the API
client, the configuration manager). Provides lifecycle state tracking and a
uniform status report.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ComponentState(Enum):
    """Lifecycle state of a component.

    Transitions follow this order:
    NOT_INITIALIZED → INITIALIZING → READY → RUNNING
                    ↓                ↓         ↓
                    → ERROR ←--------┴---------┘
                    ↓
                    TERMINATING → TERMINATED
    """

    NOT_INITIALIZED = "not_initialized"
    INITIALIZING = "initializing"
    READY = "ready"
    RUNNING = "running"
    ERROR = "error"
    TERMINATING = "terminating"
    TERMINATED = "terminated"

    @classmethod
    def is_operational(cls, state: "ComponentState") -> bool:
        """Return True for READY and RUNNING."""
        return state in [cls.READY, cls.RUNNING]

    def can_transition_to(self, target: "ComponentState") -> bool:
        """Check whether moving to ``target`` is a valid transition.

        Args:
            target: Destination state

        Returns:
            bool: True if the transition is allowed
        """
        valid_transitions = {
            ComponentState.NOT_INITIALIZED: [
                ComponentState.INITIALIZING,
                ComponentState.READY,
            ],
            ComponentState.INITIALIZING: [ComponentState.READY, ComponentState.ERROR],
            ComponentState.READY: [
                ComponentState.RUNNING,
                ComponentState.ERROR,
                ComponentState.TERMINATING,
            ],
            ComponentState.RUNNING: [
                ComponentState.READY,
                ComponentState.ERROR,
                ComponentState.TERMINATING,
            ],
            ComponentState.ERROR: [ComponentState.INITIALIZING, ComponentState.TERMINATING],
            ComponentState.TERMINATING: [ComponentState.TERMINATED],
            ComponentState.TERMINATED: [ComponentState.READY],
        }
        return target in valid_transitions.get(self, [])


class CareSphereComponent(ABC):
    """Abstract base class for CareSphere components.

    Attributes:
        _state: Current lifecycle state
        _logger: Logger named after the concrete component's module
        _initialized_at: Time the component first became READY
        _error: Last error that moved the component to ERROR
    """

    def __init__(self):
        self._state: ComponentState = ComponentState.NOT_INITIALIZED
        self._logger: logging.Logger = logging.getLogger(self.__class__.__module__)
        self._initialized_at: Optional[datetime] = None
        self._error: Optional[Exception] = None

        self._logger.debug(
            f"{self.__class__.__name__} created", extra={"component": self.__class__.__name__}
        )

    @abstractmethod
    async def initialize(self) -> None:
        """Acquire resources and move to READY.

        Must be idempotent.
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Release resources and move to TERMINATED.

        Should not raise; failures are logged.
        """
        pass

    def is_available(self) -> bool:
        """Return True when the component is READY or RUNNING."""
        return ComponentState.is_operational(self._state)

    @property
    def state(self) -> ComponentState:
        return self._state

    def get_status(self) -> Dict[str, Any]:
        """Detailed status report.

        Subclasses extend the dict returned by ``super().get_status()``.

        Returns:
            Dict[str, Any]: component, state, is_available, initialized_at, error
        """
        return {
            "component": self.__class__.__name__,
            "state": self._state.value,
            "is_available": self.is_available(),
            "initialized_at": self._initialized_at.isoformat() if self._initialized_at else None,
            "error": str(self._error) if self._error else None,
        }

    def _set_state(self, new_state: ComponentState) -> None:
        """Change state, logging unexpected transitions."""
        old_state = self._state

        if old_state == new_state:
            return

        if not old_state.can_transition_to(new_state):
            self._logger.warning(
                f"Unexpected state transition: {old_state.value} → {new_state.value}",
                extra={
                    "component": self.__class__.__name__,
                    "old_state": old_state.value,
                    "new_state": new_state.value,
                },
            )

        self._state = new_state
        self._logger.debug(
            f"State transition: {old_state.value} → {new_state.value}",
            extra={"component": self.__class__.__name__},
        )

        if new_state == ComponentState.READY and not self._initialized_at:
            self._initialized_at = datetime.now()

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self._state.value})"
