"""Desired State — what the operator declares the sensor should look like."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class Ensure(str, Enum):
    PRESENT = "present"
    LATEST = "latest"
    ABSENT = "absent"


class ProxySettings(BaseModel):
    """An enabled proxy. Host and port always travel together."""

    host: str
    port: int = Field(ge=1, le=65535)


class DesiredState(BaseModel):
    """Per-pass configuration supplied by the configuration-management engine."""

    ensure: Ensure = Ensure.PRESENT
    cid: Optional[str] = None               # Customer ID, needed for first registration
    tags: Optional[List[str]] = None        # Sensor grouping tags, compared as a set
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = Field(default=None, ge=1, le=65535)

    @model_validator(mode="after")
    def _proxy_pair_complete(self) -> "DesiredState":
        if (self.proxy_host is None) != (self.proxy_port is None):
            raise ValueError("proxy_host and proxy_port must be supplied together")
        return self

    @property
    def proxy(self) -> Optional[ProxySettings]:
        """The requested proxy, or None when the proxy should be disabled."""
        if self.proxy_host is None or self.proxy_port is None:
            return None
        return ProxySettings(host=self.proxy_host, port=self.proxy_port)
