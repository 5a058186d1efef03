"""Host-wide sensor settings."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# OS families whose package manager keeps configuration after a plain removal
PURGING_OS_FAMILIES = ("debian",)


class SensorSettings(BaseSettings):
    """
    Where the sensor lives on this host and how it is packaged.

    Each field can be overridden from a FALCON_* environment variable
    (FALCON_CTL_PATH, FALCON_PACKAGE_NAME, FALCON_SERVICE_NAME,
    FALCON_OS_FAMILY). Empty variables are ignored.
    """

    falconctl_path: str = Field(
        default="/opt/CrowdStrike/falconctl",
        validation_alias=AliasChoices("falconctl_path", "FALCON_CTL_PATH"),
    )
    package_name: str = "falcon-sensor"
    service_name: str = "falcon-sensor"
    os_family: str = "RedHat"

    model_config = SettingsConfigDict(
        env_prefix="FALCON_",
        env_ignore_empty=True,
        extra="ignore",
    )

    @property
    def purges_on_removal(self) -> bool:
        return self.os_family.lower() in PURGING_OS_FAMILIES

    @classmethod
    def from_env(cls) -> "SensorSettings":
        return cls()
