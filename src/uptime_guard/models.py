"""Pydantic models shared by the prober, the retry boundary and the API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorInfo(BaseModel):
    """Normalized description of a raised exception."""

    type: str
    message: str
    cause: ErrorInfo | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorInfo:
        """Build an ErrorInfo, following the explicit or implicit chain."""
        chained = exc.__cause__ or (
            None if exc.__suppress_context__ else exc.__context__
        )
        return cls(
            type=type(exc).__name__,
            message=str(exc),
            cause=cls.from_exception(chained) if chained is not None else None,
        )

    def __str__(self) -> str:
        return f"{self.type}: {self.message}" if self.message else self.type


class AttemptOutcome(BaseModel):
    """Result of running a fallible operation: a value or an error."""

    value: Any = None
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProbeResult(BaseModel):
    """Outcome of a single GET probe against a target URL."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    status: int = Field(default=0, ge=0)
    elapsed_ms: int = Field(default=0, ge=0, alias="ms")
    error: str | None = Field(default=None, alias="err")

    @property
    def connection_failed(self) -> bool:
        """True when no response completed and an error was captured."""
        return self.status == 0 and self.error is not None


class HealthReport(BaseModel):
    """Payload returned by the health endpoint for one check run."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    status: int
    elapsed_ms: int = Field(alias="ms")
    error: str | None = Field(default=None, alias="err")
    site: str
    url: str
    timestamp: str
    healthy: bool
    alerted: bool = False
    automated: bool = True

    @classmethod
    def from_probe(
        cls,
        result: ProbeResult,
        *,
        site: str,
        url: str,
        timestamp: str,
        healthy: bool,
        alerted: bool = False,
    ) -> HealthReport:
        return cls(
            ok=result.ok,
            status=result.status,
            ms=result.elapsed_ms,
            err=result.error,
            site=site,
            url=url,
            timestamp=timestamp,
            healthy=healthy,
            alerted=alerted,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize with wire names, dropping ``err`` when absent."""
        return self.model_dump(by_alias=True, exclude_none=True)
