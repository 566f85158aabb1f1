# homelab_dash/errors.py
from typing import Optional


class DashboardError(Exception):
    """Base error; the message is safe to show in the `error` field."""


class UpstreamError(DashboardError):
    """Upstream unreachable, timed out, or answered with a non-2xx status."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{provider} {message}")
        self.provider = provider
        self.status_code = status_code


class UpstreamAuthError(UpstreamError):
    """Upstream rejected the credential (401/403)."""


class NotConfiguredError(DashboardError):
    """A required credential or URL is missing from the environment."""


class InvalidParameterError(DashboardError):
    pass


def raise_for_upstream(provider: str, response) -> None:
    """Map an httpx response to the error taxonomy."""
    if response.status_code in (401, 403):
        raise UpstreamAuthError(provider, f"API error: {response.status_code}", response.status_code)
    if response.status_code < 200 or response.status_code >= 300:
        raise UpstreamError(provider, f"API error: {response.status_code}", response.status_code)
