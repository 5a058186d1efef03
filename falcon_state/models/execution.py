"""Execution Result — outcome of applying a plan on the host."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class OperationOutcome(BaseModel):
    """What happened to a single operation."""

    name: str
    status: str                             # applied | skipped | failed
    command: Optional[str] = None
    exit_code: Optional[int] = None
    reason: Optional[str] = None


class ExecutionResult(BaseModel):
    """Outcome of executing a reconcile plan."""

    package_state: str
    package_ok: bool
    applied: List[OperationOutcome]
    skipped: List[OperationOutcome]
    failed: List[OperationOutcome]
    success: bool
    executed_at: datetime
    execution_duration_seconds: float
