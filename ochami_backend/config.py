"""
Endpoint configuration for the OCHAMI backend.

Reads from environment variables with sensible defaults. A settings instance
is frozen once constructed and shared read-only by every request.
"""

import logging
from typing import Dict, Optional, Tuple, Union

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class EndpointSettings(BaseSettings):
    """OCHAMI endpoint settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="OCHAMI_", frozen=True, extra="ignore")

    # OCHAMI services
    base_url: str = "https://localhost:8443"
    smd_path: str = "hsm/v2"
    bss_path: str = "boot/v1"
    pcs_path: str = "power-control/v1"

    # Authentication
    access_token: Optional[str] = Field(
        default=None,
        repr=False,
        validation_alias=AliasChoices("access_token", "OCHAMI_ACCESS_TOKEN", "ACCESS_TOKEN"),
    )

    # TLS / proxy
    verify_ssl: bool = True
    root_cert_path: Optional[str] = None
    socks5_proxy: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("socks5_proxy", "OCHAMI_SOCKS5", "SOCKS5"),
    )
    https_proxy: Optional[str] = None

    # Timeouts (seconds)
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Fan-out policy
    max_concurrent: int = Field(default=10, ge=1)
    batch_size: int = Field(default=100, ge=1)

    # Power transitions
    transition_poll_interval_seconds: float = Field(default=2.0, gt=0)
    transition_timeout_seconds: float = Field(default=300.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got '{value}'")
        return value

    @field_validator("smd_path", "bss_path", "pcs_path")
    @classmethod
    def _strip_service_path(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("service path must not be empty")
        return value

    def service_path(self, service: str) -> str:
        """Return the versioned path segment for 'smd', 'bss' or 'pcs'."""
        return {"smd": self.smd_path, "bss": self.bss_path, "pcs": self.pcs_path}[service]

    @property
    def timeout(self) -> Tuple[float, float]:
        """(connect, read) timeout tuple in the form requests expects"""
        return (self.connect_timeout_seconds, self.request_timeout_seconds)

    @property
    def verify(self) -> Union[bool, str]:
        """Value for requests.Session.verify"""
        if self.root_cert_path:
            return self.root_cert_path
        return self.verify_ssl

    @property
    def proxies(self) -> Dict[str, str]:
        """Proxy mapping for requests.Session.proxies; SOCKS5 wins over HTTPS proxy."""
        proxy = self.socks5_proxy or self.https_proxy
        if not proxy:
            return {}
        return {"http": proxy, "https": proxy}


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts using this package."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
    )
