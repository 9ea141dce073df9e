"""
Pydantic configuration models.

Cloud account configs are validated when a driver is built, so a typo in
an account surfaces as a validation error instead of an SDK failure deep
inside a task.  :class:`SyncSettings` carries the reconciliation knobs.

Every model reads unset fields from the environment through its
``env_vars`` table; the first non-empty variable wins.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _EnvBacked(BaseModel):
    model_config = ConfigDict(extra="forbid")

    env_vars: ClassVar[dict[str, tuple[str, ...]]] = {}

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: Any) -> Any:
        """Fill missing fields from the environment."""
        if not isinstance(values, dict):
            return values
        values = dict(values)
        for field, names in cls.env_vars.items():
            if values.get(field) not in (None, ""):
                continue
            for name in names:
                if os.environ.get(name):
                    values[field] = os.environ[name]
                    break
        return values


class AWSConfig(_EnvBacked):
    """Account config for the Route 53 driver.

    Fields left unset (here and in the environment) stay ``None`` so boto3
    falls back to its own credential chain (instance profile,
    ``~/.aws/credentials``, ...).
    """

    env_vars = {
        "aws_access_key_id": ("AWS_ACCESS_KEY_ID",),
        "aws_secret_access_key": ("AWS_SECRET_ACCESS_KEY",),
        "aws_session_token": ("AWS_SESSION_TOKEN",),
        "region_name": ("AWS_DEFAULT_REGION", "AWS_REGION"),
        "endpoint_url": ("AWS_ENDPOINT_URL_ROUTE_53",),
    }

    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    aws_session_token: str | None = Field(default=None, description="STS session token")
    region_name: str | None = Field(
        default=None, description="Signing region; Route 53 is global and defaults to us-east-1"
    )
    endpoint_url: str | None = Field(
        default=None, description="Alternative Route 53 endpoint (e.g. a local emulator)"
    )


class GCPConfig(_EnvBacked):
    """Account config for the Cloud DNS driver.

    Without ``credentials`` or ``credentials_path`` the SDK uses
    Application Default Credentials.
    """

    env_vars = {
        "project_id": ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT"),
        "credentials_path": ("GOOGLE_APPLICATION_CREDENTIALS",),
    }

    project_id: str | None = Field(default=None, description="GCP project owning the zones")
    credentials: Any | None = Field(default=None, description="google.auth credentials object")
    credentials_path: str | None = Field(
        default=None, description="Path to a service account JSON key file"
    )

    @model_validator(mode="after")
    def load_credentials(self) -> GCPConfig:
        """Require a project and load key-file credentials when given a path."""
        if self.project_id is None:
            raise ValueError(
                "GCP project_id is required. Set it explicitly or via "
                "GOOGLE_CLOUD_PROJECT / GCLOUD_PROJECT environment variable."
            )
        if self.credentials is None and self.credentials_path:
            path = Path(self.credentials_path)
            if not path.exists():
                raise ValueError(f"Credentials file not found: {self.credentials_path}")
            from google.oauth2 import service_account  # lazy import

            self.credentials = service_account.Credentials.from_service_account_file(str(path))
        return self


class SyncSettings(_EnvBacked):
    """Reconciliation runtime settings."""

    env_vars = {
        "debounce_delay": ("ZONESYNC_DEBOUNCE_DELAY",),
        "worker_count": ("ZONESYNC_WORKERS",),
        "log_level": ("ZONESYNC_LOG_LEVEL",),
    }

    debounce_delay: float = Field(
        default=10.0, ge=0, description="Seconds between the last record mutation and the re-sync"
    )
    worker_count: int = Field(default=4, ge=1, description="Task worker pool size")
    log_level: str = Field(default="INFO", description="Level of the zonesync logger")


# Provider name -> account config model
CONFIG_REGISTRY: dict[str, type[BaseModel]] = {
    "aws": AWSConfig,
    "gcp": GCPConfig,
}


def register_config(cloud_provider: str, model: type[BaseModel]) -> None:
    CONFIG_REGISTRY[cloud_provider] = model


def validate_config(cloud_provider: str, config: dict) -> BaseModel:
    """Validate a raw account config against the provider's model.

    Raises:
        ValueError: If no model is registered for the provider.
        pydantic.ValidationError: If the config is invalid.
    """
    model = CONFIG_REGISTRY.get(cloud_provider)
    if model is None:
        raise ValueError(f"No config model registered for provider: {cloud_provider}")
    return model(**config)


__all__ = [
    "AWSConfig",
    "GCPConfig",
    "SyncSettings",
    "CONFIG_REGISTRY",
    "register_config",
    "validate_config",
]
