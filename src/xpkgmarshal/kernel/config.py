"""Marshaler configuration."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_STREAM_FILE = "package.yaml"
DEFAULT_DIGEST_PREFIX = "sha256:"
DEFAULT_REGISTRY = "index.docker.io"


class MarshalerConfig(BaseModel):
    """Format constants and policies used by a Marshaler."""
    stream_file: str = Field(DEFAULT_STREAM_FILE, description="Manifest stream path inside an image")
    digest_prefix: str = Field(DEFAULT_DIGEST_PREFIX, description="Base-name prefix of digest marker files")
    default_registry: str = Field(
        DEFAULT_REGISTRY,
        description="Registry host whose packages are named by repository alone"
    )
    duplicate_schemas: Literal["overwrite", "reject"] = Field(
        "overwrite",
        description="What to do when two schemas share a (group, version, kind)"
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("stream_file", "default_registry")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("digest_prefix")
    @classmethod
    def validate_digest_prefix(cls, v: str) -> str:
        """Digest prefixes name an algorithm, e.g. 'sha256:'."""
        if not v.endswith(":") or len(v) < 2:
            raise ValueError(f"Digest prefix '{v}' must be an algorithm name followed by ':' (e.g., 'sha256:')")
        return v
