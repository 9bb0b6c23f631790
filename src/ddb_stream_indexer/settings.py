from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ddb_stream_indexer.batching import DEFAULT_MAX_BATCH_BYTES

_MAX_BATCH_BYTES_CEILING = 100 * 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False)

    opensearch_endpoint: str = Field(alias="OPENSEARCH_ENDPOINT")
    aws_region: str = Field(alias="AWS_REGION")
    opensearch_auth_mode: Literal["sigv4", "none"] = Field(
        default="sigv4",
        alias="OPENSEARCH_AUTH_MODE",
    )
    opensearch_service: Literal["es", "aoss"] = Field(default="es", alias="OPENSEARCH_SERVICE")
    opensearch_timeout_s: float = Field(default=30.0, alias="OPENSEARCH_TIMEOUT_S")

    batch_max_bytes: int = Field(default=DEFAULT_MAX_BATCH_BYTES, alias="BATCH_MAX_BYTES")

    @field_validator("opensearch_endpoint")
    @classmethod
    def _validate_endpoint(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("OPENSEARCH_ENDPOINT must start with http:// or https://")
        return value

    @field_validator("opensearch_timeout_s")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("OPENSEARCH_TIMEOUT_S must be > 0")
        return value

    @field_validator("batch_max_bytes")
    @classmethod
    def _validate_batch_bytes(cls, value: int) -> int:
        if value < 1 or value > _MAX_BATCH_BYTES_CEILING:
            raise ValueError("BATCH_MAX_BYTES must be between 1 and 104_857_600")
        return value

    @model_validator(mode="after")
    def _validate_sigv4_endpoint(self) -> Settings:
        if self.opensearch_auth_mode == "sigv4" and not self.opensearch_endpoint.startswith(
            "https://"
        ):
            raise ValueError("SigV4 auth requires an https:// OPENSEARCH_ENDPOINT")
        return self
