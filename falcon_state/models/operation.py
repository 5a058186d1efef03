"""Operations — typed descriptors of the changes a reconciliation pass wants."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, model_validator

# Resource names used in depends_on / notifies
PACKAGE = "package"
SERVICE = "service"


class PackageState(str, Enum):
    PRESENT = "present"
    LATEST = "latest"
    ABSENT = "absent"
    PURGED = "purged"   # Removed together with its configuration files


class OperationKind(str, Enum):
    REGISTER = "register"
    UPDATE_TAGS = "update-tags"
    UPDATE_PROXY_HOST = "update-proxy-host"
    UPDATE_PROXY_PORT = "update-proxy-port"
    SERVICE_ENABLE = "service-enable"


class AgentFacet(str, Enum):
    """A single observable setting the sensor can be queried for."""
    CID = "cid"
    TAGS = "tags"
    PROXY_DISABLE = "apd"
    PROXY_HOST = "aph"
    PROXY_PORT = "app"


class ProxyFragment(BaseModel):
    """Proxy part of a falconctl invocation."""

    disable: bool
    host: Optional[str] = None
    port: Optional[int] = None

    @model_validator(mode="after")
    def _enabled_needs_endpoint(self) -> "ProxyFragment":
        if not self.disable and (self.host is None or self.port is None):
            raise ValueError("an enabled proxy fragment needs both host and port")
        return self


class FalconctlArguments(BaseModel):
    """Structured settings to be written through falconctl."""

    cid: Optional[str] = None
    proxy: Optional[ProxyFragment] = None
    tags: Optional[List[str]] = None


class Guard(BaseModel):
    """
    Idempotency check. The executor queries `facet` on the live sensor and
    skips the operation when the reported value already matches `expected`.
    """

    facet: AgentFacet
    expected: str


class Operation(BaseModel):
    kind: OperationKind
    arguments: Optional[FalconctlArguments] = None
    guard: Optional[Guard] = None
    depends_on: List[str] = [PACKAGE]
    notifies: List[str] = []

    @model_validator(mode="after")
    def _mutations_are_guarded(self) -> "Operation":
        if self.arguments is not None and self.guard is None:
            raise ValueError(
                f"operation {self.kind.value} writes sensor settings without a guard"
            )
        return self

    @property
    def name(self) -> str:
        return self.kind.value


class ReconcilePlan(BaseModel):
    """Output of one reconciliation pass."""

    package_state: PackageState
    operations: List[Operation] = []

    def operation_names(self) -> List[str]:
        return [op.name for op in self.operations]

    def get(self, kind: OperationKind) -> Optional[Operation]:
        return next((op for op in self.operations if op.kind == kind), None)
