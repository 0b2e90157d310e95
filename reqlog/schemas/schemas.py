"""
Pydantic schemas and enumerations shared by the logger and the middleware.
Records themselves are plain dicts; these models describe their parts.
"""

import traceback
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


# ===========================================================================
# Enumerations
# ===========================================================================

class DataPlacement(str, Enum):
    """Where per-call data lands in the record."""
    NESTED = "nested"
    FLATTENED = "flattened"


class AutoLoggingMode(str, Enum):
    """Which automatic record the middleware emits when a request ends."""
    SILENT = "silent"
    ACCESS = "access"
    ERROR = "error"


class LifecycleState(str, Enum):
    INIT = "init"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


# ===========================================================================
# Record parts
# ===========================================================================

class RequestMetadata(BaseModel):
    """Request description attached to every record under `req`."""
    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: Optional[Dict[str, str]] = None
    cf: Optional[Dict[str, Any]] = None

    def to_log_dict(self) -> Dict[str, Any]:
        # None values inside headers or cf are kept
        dumped = self.model_dump()
        return {key: value for key, value in dumped.items() if value is not None}


class ErrorMetadata(BaseModel):
    """The only error details a record carries: message and stack."""
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorMetadata":
        stack = None
        if exc.__traceback__ is not None:
            stack = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return cls(message=str(exc), stack=stack)

    def to_log_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ===========================================================================
# Example service schemas
# ===========================================================================

class LoginRequest(BaseModel):
    """Login body; both fields optional so the handler can report them missing."""
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    ok: bool = True
