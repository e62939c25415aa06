"""Abstract base class for resource adapters driven by an orchestration host."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from ..config import settings
from ..services.errors import error_tracker

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT")
StateT = TypeVar("StateT")


class ResourceOperationError(Exception):
    """A lifecycle operation failed. The original error is chained as ``__cause__``."""

    def __init__(self, operation: str, message: str, applied: Sequence[str] = ()):
        self.operation = operation
        self.applied = list(applied)
        super().__init__(message)


class ReplacementRequiredError(Exception):
    """The requested change cannot be applied in place."""

    def __init__(self, fields: Sequence[str]):
        self.fields = list(fields)
        super().__init__(f"Changing {', '.join(self.fields)} requires replacing the resource")


@dataclass
class Timeouts:
    """Per-operation wait limits in seconds."""

    create: float = 600.0
    delete: float = 600.0

    @classmethod
    def from_settings(cls) -> "Timeouts":
        return cls(create=settings.create_timeout, delete=settings.delete_timeout)


class ResourceAdapter(ABC, Generic[ConfigT, StateT]):
    """Interface the orchestration host drives for one resource type.

    ``read`` returns ``None`` when the remote resource is gone so the host can
    drop it from state instead of failing.
    """

    def __init__(self, timeouts: Optional[Timeouts] = None) -> None:
        self._timeouts = timeouts or Timeouts.from_settings()

    @property
    @abstractmethod
    def resource_type(self) -> str:
        """Return the resource type identifier (e.g. 'vpc_eip_v1')."""
        ...

    @property
    def timeouts(self) -> Timeouts:
        return self._timeouts

    @abstractmethod
    def create(self, config: ConfigT) -> StateT:
        """Create the resource and wait until it is usable."""
        ...

    @abstractmethod
    def read(self, resource_id: str, region: str = "") -> Optional[StateT]:
        """Refresh state. Returns None if the resource no longer exists."""
        ...

    @abstractmethod
    def update(self, resource_id: str, current: StateT, desired: ConfigT) -> Optional[StateT]:
        """Apply in-place changes from *current* to *desired*."""
        ...

    @abstractmethod
    def delete(self, resource_id: str, region: str = "") -> None:
        """Release the resource and wait until it is gone."""
        ...

    def import_state(self, resource_id: str, region: str = "") -> StateT:
        """Import by remote ID. The ID needs no translation."""
        state = self.read(resource_id, region)
        if state is None:
            raise ResourceOperationError(
                "import", f"Cannot import non-existent {self.resource_type} {resource_id!r}",
            )
        return state

    # -- Error helpers -----------------------------------------------------

    def _tracked_call(
        self,
        operation: str,
        message: str,
        func: Callable[..., Any],
        *args: Any,
        resource_id: str = "",
    ) -> Any:
        """Run *func*, wrapping failures as ResourceOperationError with *message*."""
        try:
            return func(*args)
        except ResourceOperationError:
            raise
        except Exception as e:
            self._record(operation, e, resource_id)
            raise ResourceOperationError(operation, f"{message}: {e}") from e

    def _record(self, operation: str, error: Exception, resource_id: str = "") -> None:
        logger.error("%s %s %s failed: %s", self.resource_type, operation, resource_id or "-", error)
        error_tracker.record(self.resource_type, operation, error, resource_id=resource_id)
