"""Create-or-find of the deployment's network on the controller."""

from __future__ import annotations

import logging

from sdn_agent import templates
from sdn_agent.controller import NETWORKS_PATH, ControllerClient
from sdn_agent.errors import NetworkNotFoundError
from sdn_agent.schemas import ControllerNetwork
from sdn_agent.templates import TemplateRenderer

logger = logging.getLogger(__name__)


class NetworkProvisioner:
    """Creates the deployment network and resolves its controller ids.

    The application id names both the network and its tenant: one tenant
    per deployment.
    """

    def __init__(self, controller: ControllerClient, renderer: TemplateRenderer, application_id: str):
        self.controller = controller
        self.renderer = renderer
        self.application_id = application_id

    @property
    def network_name(self) -> str:
        return self.application_id

    @property
    def tenant_id(self) -> str:
        return self.application_id

    def create_network(self) -> ControllerNetwork:
        """Create the network and return its controller entry.

        Raises:
            TransportError: If the controller request fails
            NetworkNotFoundError: If the network is not listed after creation
        """
        payload = self.renderer.render(templates.CREATE_NETWORK, {
            "networkId": self.network_name,
            "networkName": self.network_name,
            "tenantId": self.tenant_id,
        })
        self.controller.post(NETWORKS_PATH, payload)
        logger.info(f"Requested network {self.network_name} for tenant {self.tenant_id}")

        return self.find_network(self.network_name)

    def find_network(self, name: str) -> ControllerNetwork:
        """Find a controller network by name.

        The controller may prefix the names it returns, so the first entry
        whose name ends with ``name`` matches.
        """
        for network in self.controller.list_networks():
            if network.name.endswith(name):
                logger.debug(
                    f"Network {name} resolved to id {network.network_id} "
                    f"(domain {network.domain_id}, listed as {network.name})"
                )
                return network
        raise NetworkNotFoundError(name)
