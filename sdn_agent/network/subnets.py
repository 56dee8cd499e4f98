"""Subnet registration on the controller."""

from __future__ import annotations

import ipaddress
import logging
from ipaddress import IPv4Address, IPv4Network

from sdn_agent import templates
from sdn_agent.activity import ActivityTracker, get_activity_tracker
from sdn_agent.controller import SUBNETS_PATH, ControllerClient
from sdn_agent.ipam import AddressAllocator, gateway_address
from sdn_agent.templates import TemplateRenderer

logger = logging.getLogger(__name__)


class SubnetManager:
    """Creates subnet records under the deployment network.

    Subnets are addressed by their caller-chosen id afterwards. Duplicate
    creation is left to the controller to handle.
    """

    def __init__(
        self,
        controller: ControllerClient,
        renderer: TemplateRenderer,
        application_id: str,
        allocator: AddressAllocator | None = None,
        activity: ActivityTracker | None = None,
    ):
        self.controller = controller
        self.renderer = renderer
        self.application_id = application_id
        self.allocator = allocator
        self.activity = activity or get_activity_tracker()

    def create_subnet(
        self,
        subnet_id: str,
        subnet_name: str,
        gateway_ip: IPv4Address | str,
        cidr: IPv4Network | str,
    ) -> None:
        """Submit a subnet to the controller."""
        payload = self.renderer.render(templates.CREATE_SUBNET, {
            "subnetId": subnet_id,
            "subnetName": subnet_name,
            "networkId": self.application_id,
            "gatewayIp": gateway_ip,
            "networkCidr": cidr,
            "tenantId": self.application_id,
        })
        self.controller.post(SUBNETS_PATH, payload)
        logger.info(f"Created subnet {subnet_name} ({cidr}, gateway {gateway_ip})")

    def create_virtual_subnet(self, virtual_network_id: str, subnet_id: str, cidr: IPv4Network | str) -> IPv4Address:
        """Create the subnet backing a virtual network.

        The gateway is the first usable address of the CIDR. The CIDR is
        also recorded with the allocator so containers can be attached.

        Returns:
            The gateway address
        """
        network = ipaddress.IPv4Network(cidr, strict=False)
        with self.activity.blocking(f"Creating {subnet_id}"):
            gateway = gateway_address(network)
            if self.allocator is not None:
                self.allocator.record_subnet_cidr(subnet_id, network)
            self.create_subnet(virtual_network_id, subnet_id, gateway, network)
        return gateway
