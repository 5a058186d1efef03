"""
Reconciler — decides what has to change for the sensor to match its declaration.

A pass is a pure function of (desired state, fact snapshot):

  1. choose the package state (ABSENT short-circuits everything else)
  2. resolve proxy intent into a proxy fragment
  3. REGISTER when the sensor has no agent id, otherwise UPDATE drifted settings
  4. always keep the service running and enabled

Side effects belong to the executor. Nothing here touches the host.
"""

from typing import List, Optional

from falcon_state.facts.source import FactSource
from falcon_state.logging_config import logger
from falcon_state.models.desired import DesiredState, Ensure
from falcon_state.models.facts import AgentFacts
from falcon_state.models.operation import (
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
from falcon_state.reconciler.drift import DriftWatcher


class ConfigurationError(Exception):
    """Raised when the declaration cannot be reconciled. Not retryable."""
    pass


def proxy_fragment(desired: DesiredState) -> ProxyFragment:
    """Absence of the host/port pair, not emptiness, disables the proxy."""
    proxy = desired.proxy
    if proxy is None:
        return ProxyFragment(disable=True)
    return ProxyFragment(disable=False, host=proxy.host, port=proxy.port)


def cid_guard_value(cid: str) -> str:
    """The sensor reports its CID lowercased; match on the first segment."""
    return cid.split("-")[0].lower()


class Reconciler:
    """
    Turns a DesiredState and AgentFacts snapshot into a ReconcilePlan.

    States (entered on agent id presence):
      REGISTER — first-time registration, cid required
      UPDATE   — tag and proxy drift repair
    """

    def __init__(
        self,
        settings: Optional[SensorSettings] = None,
        fact_source: Optional[FactSource] = None,
    ):
        self.settings = settings or SensorSettings()
        self.fact_source = fact_source
        self._drift_watcher = DriftWatcher()

    def reconcile(
        self, desired: DesiredState, facts: Optional[AgentFacts] = None
    ) -> ReconcilePlan:
        """
        Run a single reconciliation pass.

        When no snapshot is passed the configured fact source is asked for one.
        Raises ConfigurationError before producing anything if a first-time
        registration has no cid.
        """
        if facts is None:
            facts = self.fact_source.snapshot() if self.fact_source else AgentFacts()

        package_state = self._package_state(desired.ensure)
        if desired.ensure == Ensure.ABSENT:
            logger.info("Sensor should be removed; package state %s", package_state.value)
            return ReconcilePlan(package_state=package_state)

        fragment = proxy_fragment(desired)

        if facts.registered:
            operations = self._update(desired, facts, fragment)
        else:
            operations = [self._register(desired, fragment)]

        operations.append(Operation(kind=OperationKind.SERVICE_ENABLE))
        return ReconcilePlan(package_state=package_state, operations=operations)

    def _package_state(self, ensure: Ensure) -> PackageState:
        if ensure == Ensure.ABSENT:
            if self.settings.purges_on_removal:
                return PackageState.PURGED
            return PackageState.ABSENT
        return PackageState(ensure.value)

    def _register(self, desired: DesiredState, fragment: ProxyFragment) -> Operation:
        if not desired.cid:
            raise ConfigurationError(
                "cid is required to register the sensor for the first time"
            )

        logger.info("Sensor has no agent id; planning registration")
        return Operation(
            kind=OperationKind.REGISTER,
            arguments=FalconctlArguments(
                cid=desired.cid,
                proxy=fragment,
                tags=desired.tags or None,
            ),
            guard=Guard(facet=AgentFacet.CID, expected=cid_guard_value(desired.cid)),
            notifies=[SERVICE],
        )

    def _update(
        self,
        desired: DesiredState,
        facts: AgentFacts,
        fragment: ProxyFragment,
    ) -> List[Operation]:
        operations = []
        for drift in self._drift_watcher.check(desired, facts):
            logger.info(
                "Drift on %s: %s (desired=%s observed=%s)",
                drift.facet.value, drift.description, drift.desired, drift.observed,
            )
            if drift.facet == AgentFacet.TAGS:
                operations.append(self._tag_operation(desired.tags))
            else:
                operations.extend(self._proxy_operations(fragment))

        if not operations:
            logger.debug("Sensor %s matches its declaration", facts.agent_id)
        return operations

    def _tag_operation(self, tags: List[str]) -> Operation:
        return Operation(
            kind=OperationKind.UPDATE_TAGS,
            arguments=FalconctlArguments(tags=list(tags)),
            guard=Guard(facet=AgentFacet.TAGS, expected=",".join(sorted(set(tags)))),
            notifies=[SERVICE],
        )

    def _proxy_operations(self, fragment: ProxyFragment) -> List[Operation]:
        """
        One command writes host and port together, but the sensor can only be
        queried one setting at a time, so each setting gets its own guarded
        operation carrying the same arguments.
        """
        arguments = FalconctlArguments(proxy=fragment)
        if fragment.disable:
            host_guard = Guard(facet=AgentFacet.PROXY_DISABLE, expected="true")
            port_guard = Guard(facet=AgentFacet.PROXY_DISABLE, expected="true")
        else:
            host_guard = Guard(facet=AgentFacet.PROXY_HOST, expected=fragment.host)
            port_guard = Guard(facet=AgentFacet.PROXY_PORT, expected=str(fragment.port))

        return [
            Operation(
                kind=OperationKind.UPDATE_PROXY_HOST,
                arguments=arguments,
                guard=host_guard,
                notifies=[SERVICE],
            ),
            Operation(
                kind=OperationKind.UPDATE_PROXY_PORT,
                arguments=arguments,
                guard=port_guard,
                notifies=[SERVICE],
            ),
        ]


def reconcile(
    desired: DesiredState,
    facts: Optional[AgentFacts] = None,
    settings: Optional[SensorSettings] = None,
) -> ReconcilePlan:
    """Convenience wrapper for a one-off pass."""
    return Reconciler(settings=settings).reconcile(desired, facts)
