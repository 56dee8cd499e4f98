"""Lookup of sibling virtual network and container entities.

Virtual networks declare, per subnet, whether containers attached to them
get a public address. Container entities record the public address once
one has been mapped.
"""

from __future__ import annotations

import ipaddress
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VirtualNetworkConfig:
    """Declared configuration of a virtual network."""
    subnet_id: str
    cidr: IPv4Network | None = None
    enable_public_access: bool = False
    public_cidr: IPv4Network | None = None


@dataclass
class ContainerHandle:
    """A container entity that can carry its public mapping."""
    container_id: str
    public_cidr: IPv4Network | None = None
    public_address: IPv4Address | None = None

    def record_public_address(self, cidr: IPv4Network, address: IPv4Address) -> None:
        self.public_cidr = cidr
        self.public_address = address
        logger.info(f"Container {self.container_id} public address {address} in {cidr}")


class EntityRegistry(ABC):
    """Resolves sibling entities. Lookups return None when nothing matches."""

    @abstractmethod
    def resolve_virtual_network(self, subnet_id: str) -> VirtualNetworkConfig | None:
        ...

    @abstractmethod
    def resolve_container(self, container_id: str) -> ContainerHandle | None:
        ...


class InMemoryRegistry(EntityRegistry):
    """Registry kept in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._networks: dict[str, VirtualNetworkConfig] = {}
        self._containers: dict[str, ContainerHandle] = {}

    def register_virtual_network(
        self,
        subnet_id: str,
        cidr: IPv4Network | str | None = None,
        enable_public_access: bool = False,
        public_cidr: IPv4Network | str | None = None,
    ) -> VirtualNetworkConfig:
        if enable_public_access and public_cidr is None:
            raise ValueError(f"Virtual network {subnet_id} enables public access without a public CIDR")
        config = VirtualNetworkConfig(
            subnet_id=subnet_id,
            cidr=ipaddress.IPv4Network(cidr, strict=False) if cidr else None,
            enable_public_access=enable_public_access,
            public_cidr=ipaddress.IPv4Network(public_cidr, strict=False) if public_cidr else None,
        )
        with self._lock:
            self._networks[subnet_id] = config
        logger.info(f"Registered virtual network {subnet_id} (public access: {enable_public_access})")
        return config

    def register_container(self, container_id: str) -> ContainerHandle:
        with self._lock:
            handle = self._containers.get(container_id)
            if handle is None:
                handle = ContainerHandle(container_id=container_id)
                self._containers[container_id] = handle
        return handle

    def resolve_virtual_network(self, subnet_id: str) -> VirtualNetworkConfig | None:
        with self._lock:
            return self._networks.get(subnet_id)

    def resolve_container(self, container_id: str) -> ContainerHandle | None:
        with self._lock:
            return self._containers.get(container_id)
