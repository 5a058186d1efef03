"""
Execution Fabric — reference Operation Executor.

Receives a ReconcilePlan and applies it to the host.

Behavioral Contract:
- The package step runs first; when it fails every operation depending on it
  is skipped
- A guard that exits 0 means the setting is already in place and the
  operation is skipped
- Operations run sequentially in plan order; a failed operation does not
  block later independent ones
- A service notified by an applied operation is restarted, not just enabled
- No retries. The next reconciliation pass is the retry.
"""

from datetime import datetime
from typing import Callable, List, Optional
import subprocess
import time

from falcon_state.execution.commands import CommandRenderer, RenderError
from falcon_state.logging_config import logger
from falcon_state.models.execution import ExecutionResult, OperationOutcome
from falcon_state.models.operation import (
    PACKAGE,
    SERVICE,
    Operation,
    OperationKind,
    PackageState,
    ReconcilePlan,
)
from falcon_state.models.settings import SensorSettings


class ExecutionError(Exception):
    """Raised when an operation is malformed and cannot be executed."""
    pass


def shell_runner(command: str) -> int:
    """Run a command through the shell and return its exit status."""
    completed = subprocess.run(command, shell=True, check=False)
    return completed.returncode


class ExecutionFabric:
    """
    Applies plans through an injectable shell runner and package handler.

    The package handler receives the target PackageState and raises on
    failure. Without one, the package is assumed to be managed elsewhere.
    """

    def __init__(
        self,
        settings: Optional[SensorSettings] = None,
        runner: Optional[Callable[[str], int]] = None,
        package_handler: Optional[Callable[[PackageState], None]] = None,
    ):
        self.settings = settings or SensorSettings()
        self.renderer = CommandRenderer(self.settings)
        self._runner = runner or shell_runner
        self._package_handler = package_handler

    def apply(self, plan: ReconcilePlan) -> ExecutionResult:
        """Execute a plan and report what was applied, skipped and failed."""
        start_time = time.monotonic()
        applied: List[OperationOutcome] = []
        skipped: List[OperationOutcome] = []
        failed: List[OperationOutcome] = []
        notified = set()

        package_ok = self._ensure_package(plan.package_state)

        for op in plan.operations:
            if PACKAGE in op.depends_on and not package_ok:
                logger.warning("Skipping %s: package step failed", op.name)
                skipped.append(OperationOutcome(
                    name=op.name,
                    status="skipped",
                    reason=f"dependency failed: {PACKAGE}",
                ))
                continue

            outcome = self._dispatch(op, notified)
            if outcome.status == "applied":
                applied.append(outcome)
                notified.update(op.notifies)
            elif outcome.status == "skipped":
                skipped.append(outcome)
            else:
                failed.append(outcome)

        elapsed = time.monotonic() - start_time

        return ExecutionResult(
            package_state=plan.package_state.value,
            package_ok=package_ok,
            applied=applied,
            skipped=skipped,
            failed=failed,
            success=package_ok and len(failed) == 0,
            executed_at=datetime.utcnow(),
            execution_duration_seconds=round(elapsed, 3),
        )

    def _ensure_package(self, state: PackageState) -> bool:
        if self._package_handler is None:
            logger.debug("No package handler; assuming %s is %s",
                         self.settings.package_name, state.value)
            return True
        try:
            self._package_handler(state)
        except Exception as e:
            logger.error("Package %s could not be made %s: %s",
                         self.settings.package_name, state.value, e)
            return False
        return True

    def _dispatch(self, op: Operation, notified: set) -> OperationOutcome:
        """Evaluate the guard, then run the command if the guard reports drift."""
        try:
            guard = self.renderer.guard(op)
            command = self.renderer.command(
                op,
                notified=op.kind == OperationKind.SERVICE_ENABLE and SERVICE in notified,
            )
        except RenderError as e:
            raise ExecutionError(f"Cannot execute operation {op.name}: {e}") from e

        if guard is not None and self._runner(guard) == 0:
            logger.info("%s already satisfied, skipping", op.name)
            return OperationOutcome(
                name=op.name,
                status="skipped",
                command=command,
                reason="already satisfied",
            )

        exit_code = self._runner(command)
        if exit_code != 0:
            logger.error("%s failed with exit status %d", op.name, exit_code)
            return OperationOutcome(
                name=op.name,
                status="failed",
                command=command,
                exit_code=exit_code,
            )

        logger.info("%s applied", op.name)
        return OperationOutcome(
            name=op.name,
            status="applied",
            command=command,
            exit_code=exit_code,
        )
