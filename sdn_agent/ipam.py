"""Container addressing: gateway, MAC and port id derivation, and allocation.

The allocator hands out sequential host addresses per subnet. Offset 1 of
every subnet is reserved for the gateway, so allocation starts at offset 2.
"""

from __future__ import annotations

import ipaddress
import logging
import secrets
import string
import threading
from abc import ABC, abstractmethod
from ipaddress import IPv4Address, IPv4Network

from sdn_agent.errors import AllocationError

logger = logging.getLogger(__name__)

GATEWAY_OFFSET = 1
PORT_ID_ALPHABET = string.ascii_letters + string.digits


def address_at_offset(cidr: IPv4Network, offset: int) -> IPv4Address:
    """Address at a given offset from the network address."""
    return cidr.network_address + offset


def gateway_address(cidr: IPv4Network | str) -> IPv4Address:
    """Gateway of a subnet: the first usable address (offset 1)."""
    if isinstance(cidr, str):
        cidr = ipaddress.IPv4Network(cidr, strict=False)
    return address_at_offset(cidr, GATEWAY_OFFSET)


def mac_address(address: IPv4Address | str, vendor_prefix: str = "fa:16:50") -> str:
    """Derive a container MAC from its address.

    The MAC is the vendor prefix followed by the three low-order octets
    of the address, so 80.0.1.225 becomes fa:16:50:00:01:e1.
    """
    packed = ipaddress.IPv4Address(address).packed
    return vendor_prefix.lower() + "".join(f":{octet:02x}" for octet in packed[1:])


def make_port_id(length: int = 8) -> str:
    """Random alphanumeric port identifier, unique per attachment."""
    return "".join(secrets.choice(PORT_ID_ALPHABET) for _ in range(length))


class AddressAllocator(ABC):
    """Hands out unused container addresses per subnet.

    Implementations must never return the same address twice for the same
    subnet, including under concurrent calls.
    """

    @abstractmethod
    def record_subnet_cidr(self, subnet_id: str, cidr: IPv4Network | str) -> None:
        """Register the CIDR a subnet allocates from."""
        ...

    @abstractmethod
    def subnet_cidr(self, subnet_id: str) -> IPv4Network:
        ...

    @abstractmethod
    def next_address(self, subnet_id: str) -> IPv4Address:
        ...


class SubnetAddressAllocator(AddressAllocator):
    """In-memory allocator with a lock per subnet."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cidrs: dict[str, IPv4Network] = {}
        self._next_offset: dict[str, int] = {}
        self._subnet_locks: dict[str, threading.Lock] = {}

    def record_subnet_cidr(self, subnet_id: str, cidr: IPv4Network | str) -> None:
        network = ipaddress.IPv4Network(cidr, strict=False)
        with self._lock:
            existing = self._cidrs.get(subnet_id)
            if existing == network:
                return
            if existing is not None:
                logger.warning(f"Subnet {subnet_id} CIDR changed from {existing} to {network}")
            self._cidrs[subnet_id] = network
            self._next_offset[subnet_id] = GATEWAY_OFFSET + 1
            self._subnet_locks.setdefault(subnet_id, threading.Lock())
        logger.info(f"Recorded subnet {subnet_id} with CIDR {network}")

    def subnet_cidr(self, subnet_id: str) -> IPv4Network:
        with self._lock:
            cidr = self._cidrs.get(subnet_id)
        if cidr is None:
            raise AllocationError(f"Unknown subnet: {subnet_id}", resource=subnet_id)
        return cidr

    def next_address(self, subnet_id: str) -> IPv4Address:
        with self._lock:
            subnet_lock = self._subnet_locks.get(subnet_id)
        if subnet_lock is None:
            raise AllocationError(f"Unknown subnet: {subnet_id}", resource=subnet_id)

        with subnet_lock:
            cidr = self._cidrs[subnet_id]
            offset = self._next_offset[subnet_id]
            # Broadcast address is never handed out
            if offset >= cidr.num_addresses - 1:
                raise AllocationError(
                    f"Subnet {subnet_id} ({cidr}) has no free addresses",
                    resource=subnet_id,
                )
            self._next_offset[subnet_id] = offset + 1

        address = address_at_offset(cidr, offset)
        logger.debug(f"Allocated {address} from subnet {subnet_id}")
        return address

    def allocated_count(self, subnet_id: str) -> int:
        """Number of addresses handed out from a subnet."""
        with self._lock:
            return max(self._next_offset.get(subnet_id, GATEWAY_OFFSET + 1) - GATEWAY_OFFSET - 1, 0)
