"""Transfer context: logging, timing and the pending audit trail."""

from __future__ import annotations
import time
import uuid
from typing import Any, Dict, List, Optional

import structlog

from ..contracts.types import AuditAction, AuditEntry, MappingDirection


class TransferContext:
    """Context of one transfer with bound logging, step timing and audit entries."""

    def __init__(
        self,
        direction: MappingDirection,
        transfer_id: Optional[str] = None,
        logger: Optional[structlog.BoundLogger] = None
    ):
        self.direction = direction
        self.transfer_id = transfer_id or uuid.uuid4().hex[:12]

        # Set up logging
        base = logger if logger is not None else structlog.get_logger()
        self.logger = base.bind(transfer_id=self.transfer_id, direction=direction.value)

        # Initialize timing
        self._start_time: Optional[float] = None
        self._step_times: Dict[str, float] = {}

        self.pending: List[AuditEntry] = []

    def start(self) -> None:
        """Mark start of the transfer."""
        self._start_time = time.perf_counter()
        self.logger.info("Transfer started")

    def end(self) -> float:
        """Mark end of the transfer and return its runtime.

        Returns:
            Total runtime in seconds
        """
        if self._start_time is None:
            return 0.0

        runtime = time.perf_counter() - self._start_time
        self.logger.info("Transfer completed", runtime_s=runtime, audit_entries=len(self.pending))
        return runtime

    def time_step(self, step_name: str):
        """Context manager for timing a transfer step.

        Args:
            step_name: Name of the step being timed

        Returns:
            Context manager that tracks step execution time
        """
        return _StepTimer(self, step_name)

    def record(
        self,
        thing_kind: str,
        name: str,
        action: AuditAction,
        old_value: Any = None,
        new_value: Any = None,
    ) -> AuditEntry:
        """Add a pending audit entry for a created or updated thing."""
        entry = AuditEntry(
            direction=self.direction,
            thing_kind=thing_kind,
            name=name,
            action=action,
            old_value=old_value,
            new_value=new_value,
        )
        self.pending.append(entry)
        self.logger.debug("Audit entry recorded", entry=entry.describe())
        return entry

    def commit(self) -> List[AuditEntry]:
        """Hand over the pending entries once the transfer succeeded."""
        committed, self.pending = self.pending, []
        return committed

    def discard(self) -> int:
        count = len(self.pending)
        self.pending = []
        return count

    def get_runtime_metadata(self) -> Dict[str, Any]:
        return {
            "transfer_id": self.transfer_id,
            "direction": self.direction.value,
            "step_times": self._step_times.copy(),
            "total_runtime_s": sum(self._step_times.values()),
        }


class _StepTimer:
    """Context manager for timing transfer steps."""

    def __init__(self, context: TransferContext, step_name: str):
        self.context = context
        self.step_name = step_name
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.context.logger.debug("Step started", step=self.step_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            runtime = time.perf_counter() - self.start_time
            self.context._step_times[self.step_name] = runtime

            if exc_type is None:
                self.context.logger.debug("Step completed", step=self.step_name, runtime_s=runtime)
            else:
                self.context.logger.error(
                    "Step failed",
                    step=self.step_name,
                    runtime_s=runtime,
                    error=str(exc_val)
                )
