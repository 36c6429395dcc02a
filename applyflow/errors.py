"""Exception types shared by providers, the batch runner and the pipeline."""
from __future__ import annotations


class ApplyflowError(RuntimeError):
    pass


class ConfigError(ApplyflowError):
    """Missing credential or invalid setting. Raised once, never retried."""


class ProviderError(ApplyflowError):
    """An external provider (search, rerank, LLM) call failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @classmethod
    def from_http(cls, provider: str, exc: Exception) -> "ProviderError":
        """Wrap an httpx error, keeping the HTTP status when there is one."""
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
        if status is None:
            return cls(f"{provider} request failed: {exc}")
        msg = f"{provider} HTTP {status}"
        if status == 429:
            msg += " Too Many Requests"
        body = (response.text or "").strip()[:200]
        if body:
            msg += f": {body}"
        return cls(msg, status=status)
