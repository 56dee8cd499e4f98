"""Shared fixtures: a scripted node executor and a fake SDN controller."""

from __future__ import annotations

import json

import httpx
import pytest

from sdn_agent.activity import ActivityTracker
from sdn_agent.controller import ControllerClient
from sdn_agent.executor import CommandResult, NodeExecutor
from sdn_agent.ipam import SubnetAddressAllocator
from sdn_agent.network.base import ProvisioningResult
from sdn_agent.registry import InMemoryRegistry
from sdn_agent.templates import TemplateRenderer

BRCTL_OUTPUT = (
    "bridge name\tbridge id\t\tSTP enabled\tinterfaces\n"
    "br_mgmt_1\t\t8000.0050568a1b2c\tno\t\teth0\n"
    "dovebr_42\t\t8000.000000000000\tno\t\t\n"
)

RESTART_OUTPUT = (
    "Stopping docker:                                          [  OK  ]\r\n"
    "Starting docker:                                          [  OK  ]\r\n"
)


class FakeExecutor(NodeExecutor):
    """Records commands and answers them from a table keyed by program name."""

    def __init__(self):
        super().__init__(use_sudo=False, timeout=5)
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self.responses: dict[str, CommandResult] = {
            "brctl": CommandResult(0, BRCTL_OUTPUT, ""),
            "service": CommandResult(0, RESTART_OUTPUT, ""),
        }

    def _execute(self, cmd: list[str], input: str | None = None) -> CommandResult:
        self.calls.append(cmd)
        self.inputs.append(input)
        return self.responses.get(cmd[0], CommandResult(0, "", ""))

    def commands(self, program: str) -> list[list[str]]:
        return [cmd for cmd in self.calls if cmd[0] == program]


class FakeController:
    """In-memory SDN controller behind an httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.networks: list[dict] = [{"network_id": 42, "domain_id": 7, "name": "tenant-app1"}]
        self.replies: dict[str, httpx.Response] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.replies:
            return self.replies[path]
        if request.method == "GET" and path == "/networks":
            return httpx.Response(200, json={"networks": self.networks})
        if path == "/api/dove/vrmgr/vnids/vm_mgr":
            return httpx.Response(200, text="Network exported successfully")
        return httpx.Response(200, text="{}")

    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def post_paths(self) -> list[str]:
        return [r.url.path for r in self.posts()]

    def body(self, path: str) -> dict:
        for request in self.posts():
            if request.url.path == path:
                return json.loads(request.content)
        raise AssertionError(f"No POST to {path}")


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fake_controller() -> FakeController:
    return FakeController()


@pytest.fixture
def controller(fake_controller: FakeController) -> ControllerClient:
    client = ControllerClient(
        host="controller.test",
        username="admin",
        password="secret",
        max_retries=0,
        transport=httpx.MockTransport(fake_controller.handler),
    )
    yield client
    client.close()


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def allocator() -> SubnetAddressAllocator:
    return SubnetAddressAllocator()


@pytest.fixture
def registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest.fixture
def activity() -> ActivityTracker:
    return ActivityTracker()


@pytest.fixture
def provisioning() -> ProvisioningResult:
    return ProvisioningResult(
        network_id=42,
        domain_id=7,
        network_name="app1",
        tenant_id="app1",
        bridge_name="dovebr_42",
        agent_address="10.121.4.33",
    )
