"""Values produced by overlay provisioning and container attachment."""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network


@dataclass(frozen=True)
class ProvisioningResult:
    """Identifiers resolved once by the launch sequence.

    Passed explicitly to every attach call; never re-derived.
    """
    network_id: int  # controller network id, also the bridge VNID
    domain_id: int
    network_name: str
    tenant_id: str
    bridge_name: str
    agent_address: str

    @property
    def vnid(self) -> int:
        return self.network_id


@dataclass(frozen=True)
class ContainerAttachment:
    """A container bound to an overlay subnet."""
    container_id: str
    subnet_id: str
    address: IPv4Address
    cidr: IPv4Network
    gateway: IPv4Address
    mac: str
    port_id: str
    vnid: int

    @property
    def address_with_prefix(self) -> str:
        return f"{self.address}/{self.cidr.prefixlen}"

    def script_args(self, network_name: str) -> list[str]:
        """Positional arguments for the node network-setup script."""
        return [
            self.container_id,
            network_name,
            self.port_id,
            self.mac,
            self.address_with_prefix,
            str(self.gateway),
            str(self.vnid),
            self.subnet_id,
        ]


@dataclass(frozen=True)
class PublicMapping:
    """SNAT/forwarding of a container's private address to a public one."""
    container_id: str
    private_address: IPv4Address
    public_address: IPv4Address
    network_id: int
    domain_id: int
