"""Attaching containers to the overlay network.

An attach allocates an address, binds the container's network namespace
to the bridge with the node network-setup script, then applies the public
access policy of the container's virtual network. Nothing is retried and
nothing is rolled back: a failed attach leaves whatever steps completed in
place and must be inspected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network
from pathlib import PurePosixPath

from sdn_agent.activity import ActivityTracker, get_activity_tracker
from sdn_agent.config import settings
from sdn_agent.errors import ContainerEntityNotFound, VirtualNetworkNotFound
from sdn_agent.executor import NodeExecutor
from sdn_agent.ipam import AddressAllocator, gateway_address, mac_address, make_port_id
from sdn_agent.logging_config import log_context
from sdn_agent.network.base import ContainerAttachment, ProvisioningResult, PublicMapping
from sdn_agent.network.public import PublicAddressMapper
from sdn_agent.registry import EntityRegistry

logger = logging.getLogger(__name__)

PUBLIC_SUBNET_SUFFIX = ".public"


def network_script_path(run_dir: str | None = None) -> str:
    """Location of the staged network-setup script on the node."""
    return str(PurePosixPath(run_dir or settings.run_dir) / "network.sh")


@dataclass(frozen=True)
class AttachResult:
    """Everything an attach call produced."""
    attachment: ContainerAttachment
    public_mapping: PublicMapping | None = None
    public_cidr: IPv4Network | None = None

    @property
    def address(self) -> IPv4Address:
        return self.attachment.address


class ContainerAttachmentOrchestrator:
    """Attaches containers to the provisioned overlay network.

    Safe to call concurrently for different containers: the provisioning
    result is read-only and the allocator serializes per subnet.
    """

    def __init__(
        self,
        executor: NodeExecutor,
        allocator: AddressAllocator,
        registry: EntityRegistry,
        mapper: PublicAddressMapper,
        activity: ActivityTracker | None = None,
        script_path: str | None = None,
    ):
        self.executor = executor
        self.allocator = allocator
        self.registry = registry
        self.mapper = mapper
        self.activity = activity or get_activity_tracker()
        self.script_path = script_path or network_script_path()

    def attach_network(self, provisioning: ProvisioningResult, container_id: str, subnet_id: str) -> IPv4Address:
        """Attach a container to a subnet and return its private address."""
        return self.attach(provisioning, container_id, subnet_id).address

    def attach(self, provisioning: ProvisioningResult, container_id: str, subnet_id: str) -> AttachResult:
        """Attach a container to a subnet.

        Raises:
            AllocationError: If no address is available
            NodeCommandError: If the network-setup script fails
            VirtualNetworkNotFound: If no virtual network declares subnet_id
            ContainerEntityNotFound: If public access is enabled and the
                container entity is unknown
            TransportError: If a controller request fails
        """
        with self.activity.blocking(f"Attach {container_id} to {subnet_id}"):
            attachment = self._bind(provisioning, container_id, subnet_id)

            network = self.registry.resolve_virtual_network(subnet_id)
            if network is None:
                raise VirtualNetworkNotFound(subnet_id)

            if not network.enable_public_access:
                return AttachResult(attachment=attachment)

            mapping = self._map_public_address(provisioning, attachment, network.public_cidr)
            return AttachResult(attachment=attachment, public_mapping=mapping, public_cidr=network.public_cidr)

    def _bind(self, provisioning: ProvisioningResult, container_id: str, subnet_id: str) -> ContainerAttachment:
        address = self.allocator.next_address(subnet_id)
        cidr = self.allocator.subnet_cidr(subnet_id)

        attachment = ContainerAttachment(
            container_id=container_id,
            subnet_id=subnet_id,
            address=address,
            cidr=cidr,
            gateway=gateway_address(cidr),
            mac=mac_address(address, settings.mac_vendor_prefix),
            port_id=make_port_id(settings.port_id_length),
            vnid=provisioning.vnid,
        )

        # network.sh <container> <network> <port> <mac> <addr/len> <gateway> <vnid> <interface>
        self.executor.run_checked(
            [self.script_path] + attachment.script_args(provisioning.network_name),
            sudo=True,
        )
        logger.info(
            f"Bound container {container_id} to {subnet_id} with {attachment.address_with_prefix} "
            f"(mac {attachment.mac}, port {attachment.port_id}, vnid {attachment.vnid})",
            extra=log_context(
                network_id=provisioning.network_id,
                container_id=container_id,
                subnet_id=subnet_id,
                address=attachment.address,
            ),
        )
        return attachment

    def _map_public_address(
        self,
        provisioning: ProvisioningResult,
        attachment: ContainerAttachment,
        public_cidr: IPv4Network,
    ) -> PublicMapping:
        public_subnet = attachment.subnet_id + PUBLIC_SUBNET_SUFFIX
        self.allocator.record_subnet_cidr(public_subnet, public_cidr)
        public_address = self.allocator.next_address(public_subnet)

        mapping = self.mapper.attach_public_address(
            provisioning, attachment.container_id, attachment.address, public_address,
        )

        container = self.registry.resolve_container(attachment.container_id)
        if container is None:
            raise ContainerEntityNotFound(attachment.container_id)
        container.record_public_address(public_cidr, public_address)
        return mapping
