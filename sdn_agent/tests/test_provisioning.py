"""Tests for launch-time provisioning.

These tests verify that:
1. Network creation resolves ids by name suffix, idempotently
2. Subnets are submitted with the offset-1 gateway
3. The bridge launch sequence fails hard on every verification step
"""

import httpx
import pytest

from sdn_agent.errors import (
    BridgeCreationFailed,
    BridgeIdMismatch,
    NetworkNotFoundError,
    NodeCommandError,
    ServiceRestartFailed,
)
from sdn_agent.executor import CommandResult
from sdn_agent.network import BridgeBinder, NetworkProvisioner, SubnetManager


@pytest.fixture
def provisioner(controller, renderer):
    return NetworkProvisioner(controller, renderer, "app1")


@pytest.fixture
def binder(executor, controller, renderer, provisioner):
    return BridgeBinder(executor, controller, renderer, provisioner, agent_address="10.121.4.33")


# --- Network Provisioner ---

def test_create_network_posts_and_resolves(provisioner, fake_controller):
    network = provisioner.create_network()

    assert network.network_id == 42
    assert network.domain_id == 7
    body = fake_controller.body("/v2.0/networks")
    assert body["network"]["id"] == "app1"
    assert body["network"]["name"] == "app1"
    assert body["network"]["tenant_id"] == "app1"


def test_find_network_suffix_match(provisioner, fake_controller):
    fake_controller.networks = [
        {"network_id": 1, "domain_id": 1, "name": "app1-old"},
        {"network_id": 42, "domain_id": 7, "name": "tenant-app1"},
    ]

    assert provisioner.find_network("app1").network_id == 42


def test_find_network_is_idempotent(provisioner):
    first = provisioner.find_network("app1")
    second = provisioner.find_network("app1")

    assert (first.network_id, first.domain_id) == (second.network_id, second.domain_id) == (42, 7)


def test_create_network_not_found(provisioner, fake_controller):
    fake_controller.networks = [{"network_id": 1, "domain_id": 1, "name": "someone-else"}]

    with pytest.raises(NetworkNotFoundError) as exc_info:
        provisioner.create_network()

    assert exc_info.value.name == "app1"
    assert "Cannot find network: app1" in str(exc_info.value)


def test_create_network_escapes_application_id(controller, renderer, fake_controller):
    fake_controller.networks = [{"network_id": 42, "domain_id": 7, "name": 'tenant-my"app'}]

    network = NetworkProvisioner(controller, renderer, 'my"app').create_network()

    assert network.network_id == 42
    body = fake_controller.body("/v2.0/networks")
    assert body["network"]["name"] == 'my"app'


# --- Subnet Manager ---

def test_create_subnet_payload(controller, renderer, fake_controller):
    manager = SubnetManager(controller, renderer, "app1")

    manager.create_subnet("vnet1", "netA", "50.0.0.1", "50.0.0.0/24")

    subnet = fake_controller.body("/v2.0/subnets")["subnet"]
    assert subnet["id"] == "vnet1"
    assert subnet["name"] == "netA"
    assert subnet["network_id"] == "app1"
    assert subnet["tenant_id"] == "app1"
    assert subnet["gateway_ip"] == "50.0.0.1"
    assert subnet["cidr"] == "50.0.0.0/24"


def test_create_virtual_subnet_derives_gateway(controller, renderer, allocator, activity, fake_controller):
    manager = SubnetManager(controller, renderer, "app1", allocator=allocator, activity=activity)

    gateway = manager.create_virtual_subnet("vnet1", "netA", "50.0.0.0/24")

    assert str(gateway) == "50.0.0.1"
    assert fake_controller.body("/v2.0/subnets")["subnet"]["gateway_ip"] == "50.0.0.1"
    assert str(allocator.subnet_cidr("netA")) == "50.0.0.0/24"
    assert activity.current() == []


# --- Bridge Binder ---

def test_launch_sequence(binder, executor, fake_controller):
    result = binder.launch()

    assert result.network_id == 42
    assert result.domain_id == 7
    assert result.vnid == 42
    assert result.bridge_name == "dovebr_42"
    assert result.network_name == "app1"
    assert result.agent_address == "10.121.4.33"

    programs = [cmd[0] for cmd in executor.calls]
    assert programs == ["start", "brctl", "service"]
    assert executor.calls[0] == ["start", "doved"]
    assert executor.calls[2] == ["service", "docker", "restart"]

    assert fake_controller.post_paths() == ["/v2.0/networks", "/api/dove/vrmgr/vnids/vm_mgr"]
    bridge = fake_controller.body("/api/dove/vrmgr/vnids/vm_mgr")
    assert bridge["vnid"] == 42
    assert bridge["vm_mgr"]["ip"] == "10.121.4.33"


def test_bridge_creation_without_success_marker(binder, executor, fake_controller):
    fake_controller.replies["/api/dove/vrmgr/vnids/vm_mgr"] = httpx.Response(200, text="Export failed")

    with pytest.raises(BridgeCreationFailed) as exc_info:
        binder.launch()

    assert exc_info.value.network_id == 42
    assert "42" in str(exc_info.value)
    assert executor.commands("brctl") == []


def test_bridge_id_mismatch(binder, executor):
    executor.responses["brctl"] = CommandResult(0, "dovebr_43\t8000.0\tno\n", "")

    with pytest.raises(BridgeIdMismatch) as exc_info:
        binder.launch()

    assert exc_info.value.found == "43"
    assert exc_info.value.expected == 42
    assert executor.commands("service") == []


def test_bridge_suffix_not_integer(binder, executor):
    executor.responses["brctl"] = CommandResult(0, "dovebr_abc\t8000.0\tno\n", "")

    with pytest.raises(BridgeIdMismatch):
        binder.launch()


@pytest.mark.parametrize("lines", [0, 1, 3])
def test_restart_requires_exactly_two_successes(binder, executor, lines):
    output = "".join(f"Service {i}: [  OK  ]\n" for i in range(lines))
    executor.responses["service"] = CommandResult(0, output, "")

    with pytest.raises(ServiceRestartFailed) as exc_info:
        binder.launch()

    assert exc_info.value.successes == lines


def test_restart_success_counted_on_stderr(binder, executor):
    executor.responses["service"] = CommandResult(0, "Stopping docker: [  OK  ]\n", "Starting docker: [  OK  ]\n")

    assert binder.launch().network_id == 42


def test_daemon_start_failure(binder, executor, fake_controller):
    executor.responses["start"] = CommandResult(1, "", "start: Unknown job: doved")

    with pytest.raises(NodeCommandError):
        binder.launch()

    assert fake_controller.requests == []
