from pydantic import BaseModel
from typing import Any, Optional

class ErrorInfo(BaseModel):
    kind: str
    reason: str
    message: str

class Result(BaseModel):
    """Outcome of a caller-facing operation: a value, or a typed error."""
    ok: bool
    value: Optional[Any] = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error):
        return cls(ok=False, error=ErrorInfo(
            kind=type(error).__name__,
            reason=error.reason,
            message=error.message
        ))

    def unwrap(self):
        if not self.ok:
            raise RuntimeError(f"{self.error.kind}({self.error.reason}): {self.error.message}")
        return self.value
