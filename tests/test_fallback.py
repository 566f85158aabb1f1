import asyncio

import httpx

from homelab_dash.errors import InvalidParameterError, NotConfiguredError, UpstreamError
from homelab_dash.utils.fallback import envelope, fetch_with_fallback


def run(primary, **kwargs):
    kwargs.setdefault("source", "demo")
    kwargs.setdefault("error_message", "Failed to fetch demo")
    return asyncio.run(fetch_with_fallback(primary, lambda: ["mock"], **kwargs))


def raising(exc):
    async def primary():
        raise exc

    return primary


def test_live_result():
    async def primary():
        return ["live"]

    result = run(primary)
    assert result.is_live
    assert (result.data, result.source, result.success, result.error) == (["live"], "demo", True, None)


def test_not_configured_serves_mock_successfully():
    result = run(raising(NotConfiguredError("Demo key not configured")))
    assert (result.data, result.source, result.success, result.error) == (["mock"], "mock", True, None)


def test_not_configured_can_report_failure():
    result = run(raising(NotConfiguredError("Demo key not configured")), unconfigured_success=False)
    assert result.success is False
    assert result.error == "Demo key not configured"


def test_upstream_error_message_is_surfaced():
    result = run(raising(UpstreamError("Demo", "API error: 503", 503)))
    assert (result.source, result.success, result.error) == ("mock", False, "Demo API error: 503")


def test_invalid_parameter_is_surfaced():
    result = run(raising(InvalidParameterError("Invalid date parameter")))
    assert result.error == "Invalid date parameter"


def test_network_error_uses_generic_message():
    result = run(raising(httpx.ConnectTimeout("timed out")))
    assert result.error == "Failed to fetch demo"
    assert result.data == ["mock"]


def test_unexpected_error_is_contained():
    result = run(raising(KeyError("current")), failure_success=True)
    assert result.success is True
    assert result.error == "Failed to fetch demo"


def test_envelope_shape():
    body = envelope([1], "demo", stats={"total": 1})
    assert body["success"] is True
    assert body["source"] == "demo"
    assert body["stats"] == {"total": 1}
    assert body["timestamp"].endswith("Z")
    assert "error" not in body
