"""
Drift Watcher — compares desired sensor settings against observed facts.

Each rule is deterministic and returns at most one DriftEvent. Drift is the
normal input to reconciliation, never an error.
"""

from typing import Callable, List, Optional

from falcon_state.models.desired import DesiredState
from falcon_state.models.facts import AgentFacts
from falcon_state.models.operation import AgentFacet


class DriftEvent:
    """A detected deviation between desired and observed sensor settings."""

    def __init__(
        self,
        facet: AgentFacet,
        description: str,
        desired: Optional[str] = None,
        observed: Optional[str] = None,
    ):
        self.facet = facet
        self.description = description
        self.desired = desired
        self.observed = observed

    def to_dict(self) -> dict:
        return {
            "facet": self.facet.value,
            "description": self.description,
            "desired": self.desired,
            "observed": self.observed,
        }


def tags_differ(desired: Optional[List[str]], current: Optional[List[str]]) -> bool:
    """Unset desired tags never drift. Otherwise compare as unordered sets."""
    if desired is None:
        return False
    return set(desired) != set(current or [])


def proxy_differs(desired: DesiredState, facts: AgentFacts) -> bool:
    proxy = desired.proxy
    if proxy is None:
        return not facts.proxy_disable

    if facts.proxy_disable:
        return True
    if proxy.host != facts.proxy_host:
        return True
    # Ports are compared as text; fact sources report them as int or str
    return str(proxy.port) != str(facts.proxy_port)


class DriftWatcher:
    """Rule-based drift detection for a registered sensor."""

    def __init__(self):
        self._rules: List[Callable] = []
        self._register_default_rules()

    def _register_default_rules(self) -> None:
        self._rules.append(self._check_tag_drift)
        self._rules.append(self._check_proxy_drift)

    def check(self, desired: DesiredState, facts: AgentFacts) -> List[DriftEvent]:
        """Run all drift rules against a fact snapshot."""
        events = []
        for rule in self._rules:
            event = rule(desired, facts)
            if event:
                events.append(event)
        return events

    def _check_tag_drift(
        self, desired: DesiredState, facts: AgentFacts
    ) -> Optional[DriftEvent]:
        if not tags_differ(desired.tags, facts.tags):
            return None
        return DriftEvent(
            facet=AgentFacet.TAGS,
            description="Sensor grouping tags differ from the declared set",
            desired=",".join(sorted(set(desired.tags))),
            observed=",".join(sorted(set(facts.tags or []))),
        )

    def _check_proxy_drift(
        self, desired: DesiredState, facts: AgentFacts
    ) -> Optional[DriftEvent]:
        if not proxy_differs(desired, facts):
            return None

        proxy = desired.proxy
        if proxy is None:
            return DriftEvent(
                facet=AgentFacet.PROXY_DISABLE,
                description="Proxy is enabled on the sensor but should be disabled",
                desired="disabled",
                observed=f"{facts.proxy_host}:{facts.proxy_port}",
            )

        observed = (
            "disabled" if facts.proxy_disable
            else f"{facts.proxy_host}:{facts.proxy_port}"
        )
        return DriftEvent(
            facet=AgentFacet.PROXY_HOST,
            description="Proxy settings differ from the declared endpoint",
            desired=f"{proxy.host}:{proxy.port}",
            observed=observed,
        )
