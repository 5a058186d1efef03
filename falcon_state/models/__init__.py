"""falcon_state data models."""

from falcon_state.models.desired import DesiredState, Ensure, ProxySettings
from falcon_state.models.execution import ExecutionResult, OperationOutcome
from falcon_state.models.facts import AgentFacts
from falcon_state.models.operation import (
    PACKAGE,
    SERVICE,
    AgentFacet,
    FalconctlArguments,
    Guard,
    Operation,
    OperationKind,
    PackageState,
    ProxyFragment,
    ReconcilePlan,
)
from falcon_state.models.settings import SensorSettings

__all__ = [
    "PACKAGE",
    "SERVICE",
    "AgentFacet",
    "AgentFacts",
    "DesiredState",
    "Ensure",
    "ExecutionResult",
    "FalconctlArguments",
    "Guard",
    "Operation",
    "OperationKind",
    "OperationOutcome",
    "PackageState",
    "ProxyFragment",
    "ProxySettings",
    "ReconcilePlan",
    "SensorSettings",
]
