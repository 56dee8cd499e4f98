"""Controller-side bridge creation and node-side verification.

Runs once when the agent launches, after the node's management bridge has
been customized. Every verification failure is fatal: a half-provisioned
bridge needs manual cleanup before another attempt.
"""

from __future__ import annotations

import logging

from sdn_agent import templates
from sdn_agent.config import settings
from sdn_agent.controller import BRIDGE_PATH, ControllerClient
from sdn_agent.errors import BridgeCreationFailed, BridgeIdMismatch, ServiceRestartFailed
from sdn_agent.executor import NodeExecutor
from sdn_agent.logging_config import log_context
from sdn_agent.network.base import ProvisioningResult
from sdn_agent.network.provisioner import NetworkProvisioner
from sdn_agent.parsers import count_marker_lines, parse_bridge_id
from sdn_agent.templates import TemplateRenderer

logger = logging.getLogger(__name__)


class BridgeBinder:
    """Launches the overlay bridge for the deployment network."""

    def __init__(
        self,
        executor: NodeExecutor,
        controller: ControllerClient,
        renderer: TemplateRenderer,
        provisioner: NetworkProvisioner,
        agent_address: str | None = None,
    ):
        self.executor = executor
        self.controller = controller
        self.renderer = renderer
        self.provisioner = provisioner
        self.agent_address = agent_address or settings.sdn_agent_address

    def start_daemon(self) -> None:
        self.executor.run_checked(["start", settings.agent_daemon], sudo=True)
        logger.info(f"Started {settings.agent_daemon}")

    def create_bridge(self, network_id: int) -> None:
        """Ask the controller to export the network to this node.

        Raises:
            BridgeCreationFailed: If the response lacks the success marker
        """
        payload = self.renderer.render(templates.CREATE_BRIDGE, {
            "networkId": network_id,
            "agentAddress": self.agent_address,
        })
        output = self.controller.post(BRIDGE_PATH, payload)
        if settings.bridge_success_marker not in output:
            raise BridgeCreationFailed(network_id, output)

    def verify_bridge(self, network_id: int) -> str:
        """Check the node bridge carries the network id.

        Returns:
            The bridge name

        Raises:
            BridgeIdMismatch: If the bridge is missing or has another id
        """
        result = self.executor.run_checked(["brctl", "show"], sudo=True)
        bridge_id = parse_bridge_id(result.stdout, settings.bridge_prefix)
        if bridge_id != network_id:
            raise BridgeIdMismatch(str(bridge_id), expected=network_id)
        bridge_name = f"{settings.bridge_prefix}{bridge_id}"
        logger.debug(f"Added bridge: {bridge_name}")
        return bridge_name

    def restart_container_engine(self) -> None:
        """Restart the container engine so it picks up the bridge.

        Raises:
            ServiceRestartFailed: Unless exactly the expected number of
                sub-services report success
        """
        service = settings.container_engine_service
        logger.info(f"SDN agent restarting {service} service")
        result = self.executor.run(["service", service, "restart"], sudo=True)
        successes = count_marker_lines(result.output, settings.restart_success_marker)
        if successes != settings.restart_success_count:
            raise ServiceRestartFailed(service, result.output, successes)

    def launch(self) -> ProvisioningResult:
        """Run the launch sequence and return the resolved identifiers."""
        self.start_daemon()

        network = self.provisioner.create_network()
        self.create_bridge(network.network_id)
        bridge_name = self.verify_bridge(network.network_id)
        self.restart_container_engine()

        result = ProvisioningResult(
            network_id=network.network_id,
            domain_id=network.domain_id,
            network_name=self.provisioner.network_name,
            tenant_id=self.provisioner.tenant_id,
            bridge_name=bridge_name,
            agent_address=self.agent_address,
        )
        logger.info(
            f"Provisioned network {result.network_name} on bridge {bridge_name} "
            f"(network {result.network_id}, domain {result.domain_id})",
            extra=log_context(
                network_id=result.network_id, domain_id=result.domain_id, bridge_name=bridge_name,
            ),
        )
        return result
