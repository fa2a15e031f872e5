"""Connection models for runtime-supplied database credentials.

The credentials arrive in the body of ``POST /connect``. They are validated
here, held by the connection manager while the connection is active, and never
written anywhere else.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

import pydantic
from asyncpg import Pool
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from pgweb.models.errors import InvalidRequestError, ValidationError


class ConnectionConfig(BaseModel):
    """Credentials and transport options for one PostgreSQL database."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str = Field(..., min_length=1, description="Database host")
    port: int = Field(..., gt=0, le=65535, description="Database port")
    username: str = Field(default="", description="Database user")
    password: SecretStr = Field(default=SecretStr(""), description="Database password")
    database: str = Field(..., min_length=1, description="Database name")
    ssl_mode: bool = Field(default=False, description="Require TLS transport")

    @field_validator("host", "database", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        """Trim surrounding whitespace; credentials are left as sent."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("port", mode="before")
    @classmethod
    def parse_port(cls, v: Any) -> Any:
        """Accept a JSON number or a numeric string; blank means unset."""
        if v is None:
            return 0
        if isinstance(v, str):
            stripped = v.strip()
            if not stripped:
                return 0
            try:
                return int(stripped)
            except ValueError as e:
                raise ValueError(f"invalid number {v!r}") from e
        return v

    @classmethod
    def from_payload(cls, payload: Any) -> "ConnectionConfig":
        """Build a config from a decoded request body.

        Args:
            payload: Decoded JSON body.

        Returns:
            ConnectionConfig: Validated configuration.

        Raises:
            InvalidRequestError: If the body is not a JSON object or has
                unknown or wrongly-typed fields.
            ValidationError: If host, port or database are missing or invalid.
        """
        if not isinstance(payload, dict):
            raise InvalidRequestError("Failed to decode request body: expected a JSON object")
        try:
            return cls.model_validate(payload)
        except pydantic.ValidationError as e:
            errors = e.errors(include_url=False, include_input=False)
            decode_failures = [err for err in errors if err["type"] == "extra_forbidden"]
            if decode_failures:
                field_name = ".".join(str(p) for p in decode_failures[0]["loc"])
                raise InvalidRequestError(
                    f'Failed to decode request body: unknown field "{field_name}"'
                ) from e
            raise ValidationError(
                f"Invalid connection parameters: {_describe(errors)}",
                details={"errors": [_describe([err]) for err in errors]},
            ) from e

    @property
    def ssl(self) -> str:
        """asyncpg ssl mode derived from ``ssl_mode``."""
        return "require" if self.ssl_mode else "disable"

    @property
    def safe_dsn(self) -> str:
        """Build DSN with masked password for logging."""
        return (
            f"postgresql://{self.username}:***@{self.host}:{self.port}/{self.database}"
            f"?sslmode={self.ssl}"
        )

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``asyncpg.create_pool``."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "ssl": self.ssl,
        }
        if self.username:
            kwargs["user"] = self.username
        password = self.password.get_secret_value()
        if password:
            kwargs["password"] = password
        return kwargs


def _describe(errors: list[dict[str, Any]]) -> str:
    messages = {
        "host": "host is required",
        "database": "database is required",
        "port": "port must be > 0 and <= 65535",
    }
    parts: list[str] = []
    for err in errors:
        name = str(err["loc"][0]) if err["loc"] else ""
        if name in messages and err["type"] in {
            "missing",
            "string_too_short",
            "greater_than",
            "less_than_equal",
        }:
            parts.append(messages[name])
        else:
            parts.append(f"{name}: {err['msg']}" if name else err["msg"])
    return "; ".join(parts)


@dataclass(frozen=True, slots=True)
class ActiveConnection:
    """The live pool plus the configuration that produced it.

    Instances are immutable; the manager swaps the whole record, so readers
    never observe a pool paired with another connection's config.
    """

    pool: Pool
    config: ConnectionConfig
    connected_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    healthy: bool = True

    def mark_unhealthy(self) -> "ActiveConnection":
        return replace(self, healthy=False)
