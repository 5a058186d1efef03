"""
falcon_state API — FastAPI endpoints.

Lets a configuration-management engine ask for a plan without importing
the package:
- Effective sensor settings
- Reconcile plans (typed)
- Reconcile plans rendered as shell commands and guards
- Applying a plan on this host through the execution fabric
"""

from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ValidationError

from falcon_state.execution.commands import CommandRenderer
from falcon_state.execution.fabric import ExecutionError, ExecutionFabric
from falcon_state.models.desired import DesiredState
from falcon_state.models.facts import AgentFacts
from falcon_state.models.operation import PackageState, ReconcilePlan
from falcon_state.models.settings import SensorSettings
from falcon_state.reconciler.planner import ConfigurationError, Reconciler


# --- Request/Response Models ---

class PlanRequest(BaseModel):
    desired: DesiredState = DesiredState()
    facts: Optional[dict] = None            # Nested fact structure, absent if never configured


class RenderedPlanResponse(BaseModel):
    package_state: str
    operations: list


# --- Application Factory ---

def create_app(
    settings: Optional[SensorSettings] = None,
    runner: Optional[Callable[[str], int]] = None,
    package_handler: Optional[Callable[[PackageState], None]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    runner and package_handler are handed to the execution fabric; the
    defaults run commands through the host shell.
    """

    app = FastAPI(
        title="falcon_state API",
        description="Falcon sensor reconciliation planner",
        version="0.1.0",
    )

    sensor_settings = settings or SensorSettings.from_env()
    reconciler = Reconciler(settings=sensor_settings)
    renderer = CommandRenderer(sensor_settings)
    fabric = ExecutionFabric(
        sensor_settings, runner=runner, package_handler=package_handler
    )

    app.state.settings = sensor_settings
    app.state.reconciler = reconciler
    app.state.execution_fabric = fabric

    def _plan(req: PlanRequest) -> ReconcilePlan:
        try:
            facts = AgentFacts.from_facts(req.facts)
        except ValidationError as e:
            raise HTTPException(422, f"Malformed facts: {e}")
        try:
            return reconciler.reconcile(req.desired, facts)
        except ConfigurationError as e:
            raise HTTPException(422, str(e))

    @app.get("/settings")
    def get_settings():
        """Effective sensor settings."""
        return sensor_settings.model_dump()

    @app.post("/plan")
    def plan(req: PlanRequest):
        """Typed reconcile plan for one pass."""
        return _plan(req).model_dump(mode="json")

    @app.post("/plan/render")
    def render_plan(req: PlanRequest):
        """Reconcile plan with commands and guards rendered for the shell."""
        result = _plan(req)
        return RenderedPlanResponse(
            package_state=result.package_state.value,
            operations=renderer.render(result),
        )

    @app.post("/apply")
    def apply_plan(req: PlanRequest):
        """Plan one pass and apply it on this host."""
        result = _plan(req)
        try:
            outcome = fabric.apply(result)
        except ExecutionError as e:
            raise HTTPException(500, str(e))
        return outcome.model_dump(mode="json")

    return app
