"""Overlay network provisioning and container attachment.

- Network and subnet creation on the SDN controller
- Bridge launch and node-side verification
- Container attachment with optional public address mapping
- Base node customization
"""

from sdn_agent.network.base import ContainerAttachment, ProvisioningResult, PublicMapping
from sdn_agent.network.provisioner import NetworkProvisioner
from sdn_agent.network.subnets import SubnetManager
from sdn_agent.network.bridge import BridgeBinder
from sdn_agent.network.public import PublicAddressMapper
from sdn_agent.network.attach import AttachResult, ContainerAttachmentOrchestrator
from sdn_agent.network.node import NodeConfigurator

__all__ = [
    # Values
    "ProvisioningResult",
    "ContainerAttachment",
    "PublicMapping",
    "AttachResult",
    # Launch-time provisioning
    "NetworkProvisioner",
    "SubnetManager",
    "BridgeBinder",
    "NodeConfigurator",
    # Per-container attachment
    "ContainerAttachmentOrchestrator",
    "PublicAddressMapper",
]
