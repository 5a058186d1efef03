"""
Fact Sources — where a reconciliation pass gets its view of the sensor.

The reconciler never queries the host itself. It is handed an immutable
AgentFacts snapshot by whichever source the caller wires in.
"""

from typing import Callable, Optional, Protocol

from falcon_state.models.facts import AgentFacts


class FactSource(Protocol):
    def snapshot(self) -> AgentFacts:
        ...


class StaticFactSource:
    """Always returns the same snapshot. Useful as a fake in tests."""

    def __init__(self, facts: Optional[AgentFacts] = None):
        self._facts = facts or AgentFacts()

    def snapshot(self) -> AgentFacts:
        return self._facts.model_copy(deep=True)


class DictFactSource:
    """
    Wraps the nested fact structure supplied by the configuration-management
    engine. The loader is called on every snapshot so each pass sees fresh facts.
    """

    def __init__(self, loader: Callable[[], Optional[dict]]):
        self._loader = loader

    def snapshot(self) -> AgentFacts:
        return AgentFacts.from_facts(self._loader())
