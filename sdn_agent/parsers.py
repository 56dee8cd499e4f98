"""Parsers for node command output.

Each function here scrapes one fact out of the text a node command prints,
so the provisioning code works with typed values. The expected input format
is documented on each function; anything that does not match is reported,
never guessed at.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from sdn_agent.errors import BridgeIdMismatch, NotFoundError

_LINE_SPLIT = re.compile(r"[\r\n]+")
_PING_SUMMARY = re.compile(r"(\d+)\s+packets transmitted,\s+(\d+)\s+(?:packets\s+)?received")


@dataclass(frozen=True)
class NodeRoutes:
    """Addresses discovered from the node routing table."""
    address: str  # management subnet entry on the node interface
    gateway: str  # next hop for the 10.0.0.0/8 overlay range


def split_lines(output: str) -> list[str]:
    """Split command output on any mix of CR and LF, dropping empty lines."""
    return [line for line in _LINE_SPLIT.split(output) if line]


def first_word_after(text: str, marker: str) -> str | None:
    """Return the first whitespace-delimited word following marker."""
    index = text.find(marker)
    if index < 0:
        return None
    words = text[index + len(marker):].split()
    return words[0] if words else None


def count_marker_lines(output: str, marker: str) -> int:
    """Count output lines containing marker.

    Used on service restart output, e.g.::

        Stopping docker:                                  [  OK  ]
        Starting docker:                                  [  OK  ]
    """
    return sum(1 for line in split_lines(output) if marker in line)


def parse_bridge_id(brctl_output: str, prefix: str) -> int:
    """Extract the numeric suffix of the first bridge named ``<prefix><id>``.

    Expects ``brctl show`` output::

        bridge name     bridge id               STP enabled     interfaces
        br_mgmt_1       8000.0050568a1b2c       no              eth0
        dovebr_42       8000.000000000000       no

    Raises:
        BridgeIdMismatch: If no such bridge exists or the suffix is not an integer
    """
    match = re.search(re.escape(prefix) + r"(\S*)", brctl_output)
    if match is None:
        raise BridgeIdMismatch(None)
    suffix = match.group(1)
    if re.fullmatch(r"[0-9]+", suffix) is None:
        raise BridgeIdMismatch(suffix)
    return int(suffix)


def parse_routes(netstat_output: str, interface: str, subnet_address: str) -> NodeRoutes:
    """Find the node management address and overlay gateway.

    Expects ``netstat -rn`` output. Only routes on ``interface`` are used.
    The address is the destination of the /26-/32 route within the first
    three octets of ``subnet_address``; the gateway is the next hop of the
    ``10.0.0.0`` route::

        Destination     Gateway         Genmask         Flags   MSS Window  irtt Iface
        10.0.0.0        10.121.4.1      255.0.0.0       UG        0 0          0 eth0
        10.121.4.0      0.0.0.0         255.255.255.192 U         0 0          0 eth0

    Raises:
        NotFoundError: If either route is missing
    """
    routes = [line for line in split_lines(netstat_output) if interface in line]
    network_prefix = subnet_address[:subnet_address.rfind(".")]

    address = None
    for line in routes:
        if "255.255.255." in line and network_prefix in line:
            address = line.split()[0]
            break
    if address is None:
        raise NotFoundError(f"No subnet route for {subnet_address} on {interface}", resource=interface)

    gateway = None
    for line in routes:
        if "10.0.0.0" in line:
            gateway = first_word_after(line, "10.0.0.0")
            break
    if gateway is None:
        raise NotFoundError(f"No 10.0.0.0 route on {interface}", resource=interface)

    return NodeRoutes(address=address, gateway=gateway)


def parse_packet_loss(ping_output: str) -> float | None:
    """Return packet loss as a fraction from ``ping -q`` summary output.

    Expects a line such as ``10 packets transmitted, 9 received, 10% packet loss``.
    Returns None when no summary line is present.
    """
    match = _PING_SUMMARY.search(ping_output)
    if match is None:
        return None
    transmitted, received = int(match.group(1)), int(match.group(2))
    if transmitted == 0:
        return None
    return 1.0 - received / transmitted
