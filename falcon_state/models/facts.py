"""Agent Facts — the sensor state observed on the host for one pass."""

from typing import List, Optional, Union

from pydantic import BaseModel, field_validator


class AgentFacts(BaseModel):
    """
    Snapshot of what the sensor currently reports.

    Every field is optional because a host that never configured the sensor
    reports nothing at all. The one exception is proxy_disable, which the
    sensor treats as true until a proxy has been enabled.
    """

    agent_id: Optional[str] = None          # Present once installed and registered
    tags: Optional[List[str]] = None
    proxy_disable: bool = True
    proxy_host: Optional[str] = None
    proxy_port: Optional[Union[int, str]] = None  # Fact sources disagree on the type

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tag_string(cls, value):
        if isinstance(value, str):
            return [t.strip() for t in value.split(",") if t.strip()]
        return value

    @field_validator("proxy_disable", mode="before")
    @classmethod
    def _unset_means_disabled(cls, value):
        return True if value is None else value

    @property
    def registered(self) -> bool:
        return self.agent_id is not None

    @classmethod
    def from_facts(cls, facts: Optional[dict]) -> "AgentFacts":
        """Build a snapshot from the engine's nested fact structure."""
        if not facts:
            return cls()
        return cls.model_validate(facts)
