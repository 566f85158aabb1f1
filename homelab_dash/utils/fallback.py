# homelab_dash/utils/fallback.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..errors import DashboardError, NotConfiguredError, UpstreamError

logger = logging.getLogger("uvicorn.error")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def envelope(data: Any, source: str, success: bool = True, error: Optional[str] = None, **extra) -> Dict[str, Any]:
    """Build the dashboard JSON envelope shared by every route."""
    body: Dict[str, Any] = {"success": success, "data": data, "source": source}
    if error:
        body["error"] = error
    body.update(extra)
    body["timestamp"] = utc_now_iso()
    return body


@dataclass
class FetchResult:
    data: Any
    source: str
    success: bool = True
    error: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.source != "mock"

    def envelope(self, **extra) -> Dict[str, Any]:
        return envelope(self.data, self.source, self.success, self.error, **extra)


async def fetch_with_fallback(
    primary: Callable[[], Awaitable[Any]],
    fallback: Callable[[], Any],
    *,
    source: str,
    error_message: str,
    unconfigured_success: bool = True,
    failure_success: bool = False,
) -> FetchResult:
    """
    Try the live source once and substitute the mock payload on any failure.

    - NotConfiguredError short-circuits before any network call; the result
      carries `unconfigured_success` and, when that is False, the message.
    - DashboardError subclasses surface their own message; anything else is
      logged with a traceback and reported as `error_message`.
    """
    try:
        data = await primary()
    except NotConfiguredError as e:
        logger.info("%s not configured, serving mock data", source)
        return FetchResult(
            data=fallback(),
            source="mock",
            success=unconfigured_success,
            error=None if unconfigured_success else str(e),
        )
    except UpstreamError as e:
        logger.warning("%s upstream failure: %s", source, e)
        return FetchResult(data=fallback(), source="mock", success=failure_success, error=str(e))
    except DashboardError as e:
        logger.warning("%s request rejected: %s", source, e)
        return FetchResult(data=fallback(), source="mock", success=failure_success, error=str(e))
    except httpx.HTTPError as e:
        logger.warning("%s unreachable: %r", source, e)
        return FetchResult(data=fallback(), source="mock", success=failure_success, error=error_message)
    except Exception:
        logger.exception("%s fetch failed", source)
        return FetchResult(data=fallback(), source="mock", success=failure_success, error=error_message)
    return FetchResult(data=data, source=source)
