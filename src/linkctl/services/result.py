"""ServiceResult and ServiceError, the return contract of every link operation.

INVARIANT: All service-layer methods return ServiceResult.
The CLI renders it as rich text, quiet lines or JSON.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(StrEnum):
    """Failure codes a link operation can report."""

    NO_FILE = "NO_FILE"
    NOT_FOUND = "NOT_FOUND"
    MALFORMED_LINK = "MALFORMED_LINK"
    OPEN_FAILED = "OPEN_FAILED"
    RESERVED_TYPE = "RESERVED_TYPE"
    INVALID_TYPE = "INVALID_TYPE"
    INVALID_BATCH_SIZE = "INVALID_BATCH_SIZE"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    ``detail`` carries machine-readable context, e.g. the ``search`` and
    ``reason`` of a failed resolution.
    """

    model_config = {"frozen": True}

    code: ErrorCode
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type for all link operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name, also the renderer key (``"parse"``, ``"resolve"``...).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues, e.g. malformed links skipped while parsing.
        error: Structured error if ``ok`` is False.
        meta: Verbose-mode extras such as the telemetry span tree.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(cls, op: str, code: ErrorCode, message: str, **detail: object) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=dict(detail)),
        )
