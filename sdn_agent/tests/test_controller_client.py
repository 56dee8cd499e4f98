"""Tests for the SDN controller client.

These tests verify that:
1. Requests carry credentials and JSON content type
2. Network listings are parsed into typed entries
3. Malformed listings and HTTP errors become TransportError
4. Only connection failures are retried
"""

import base64
from unittest.mock import MagicMock, patch

import httpx
import pytest

from sdn_agent.controller import ControllerClient, with_retry
from sdn_agent.errors import TransportError


def make_client(handler, max_retries=0) -> ControllerClient:
    return ControllerClient(
        host="controller.test",
        username="admin",
        password="secret",
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
    )


# --- Requests ---

def test_post_sends_credentials_and_payload(controller, fake_controller):
    output = controller.post("v2.0/networks", '{"network": {}}')

    request = fake_controller.requests[0]
    expected_auth = "Basic " + base64.b64encode(b"admin:secret").decode()
    assert output == "{}"
    assert request.method == "POST"
    assert str(request.url) == "http://controller.test/v2.0/networks"
    assert request.headers["Authorization"] == expected_auth
    assert request.headers["Content-Type"] == "application/json"
    assert request.content == b'{"network": {}}'


def test_post_returns_raw_text(controller):
    assert "successfully" in controller.post("api/dove/vrmgr/vnids/vm_mgr", "{}")


def test_http_error_status_raises_transport_error():
    client = make_client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(TransportError) as exc_info:
        client.post("v2.0/subnets", "{}")

    assert exc_info.value.status_code == 500
    assert exc_info.value.resource == "v2.0/subnets"
    assert not exc_info.value.retriable


# --- Network listing ---

def test_list_networks(controller, fake_controller):
    fake_controller.networks.append({"network_id": 43, "domain_id": 8, "name": "other"})

    networks = controller.list_networks()

    assert [(n.network_id, n.domain_id, n.name) for n in networks] == [
        (42, 7, "tenant-app1"),
        (43, 8, "other"),
    ]
    assert fake_controller.requests[0].url.path == "/networks"


@pytest.mark.parametrize("body", [
    "not json",
    "[]",
    "{}",
    '{"networks": {}}',
    '{"networks": [{"network_id": "x", "domain_id": 1, "name": "a"}]}',
    '{"networks": [{"network_id": 1, "name": "a"}]}',
])
def test_malformed_listing_raises_transport_error(body):
    client = make_client(lambda request: httpx.Response(200, text=body))

    with pytest.raises(TransportError) as exc_info:
        client.list_networks()

    assert exc_info.value.resource == "networks"
    assert not exc_info.value.retriable


# --- Retry ---

def test_with_retry_success_first_attempt():
    func = MagicMock(return_value="ok")

    assert with_retry(func, "a", max_retries=2, backoff_base=0) == "ok"
    func.assert_called_once_with("a")


def test_with_retry_success_after_connect_errors():
    func = MagicMock(side_effect=[
        httpx.ConnectError("Connection refused"),
        httpx.ConnectTimeout("Timeout"),
        "ok",
    ])

    with patch("sdn_agent.controller.time.sleep") as sleep:
        assert with_retry(func, max_retries=3, backoff_base=1.0, backoff_max=10.0) == "ok"

    assert func.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]


def test_with_retry_exhausted():
    func = MagicMock(side_effect=httpx.ConnectError("Connection refused"))

    with patch("sdn_agent.controller.time.sleep"):
        with pytest.raises(TransportError) as exc_info:
            with_retry(func, max_retries=2, backoff_base=0)

    assert "unreachable after 3 attempts" in str(exc_info.value)
    assert func.call_count == 3
    assert exc_info.value.retriable


def test_read_timeout_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("read timed out", request=request)

    client = make_client(handler, max_retries=3)

    with pytest.raises(TransportError) as exc_info:
        client.post("v2.0/networks", "{}")

    assert len(calls) == 1
    assert not exc_info.value.retriable


def test_connect_error_retried_by_client():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 2:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(200, text="{}")

    client = make_client(handler, max_retries=2)

    with patch("sdn_agent.controller.time.sleep"):
        assert client.post("v2.0/networks", "{}") == "{}"

    assert len(attempts) == 2
