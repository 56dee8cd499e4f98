"""SDN VE agent: wires the provisioning components for one node."""

from __future__ import annotations

import ipaddress
import logging
import threading
from ipaddress import IPv4Address, IPv4Network

from sdn_agent.activity import ActivityTracker, get_activity_tracker
from sdn_agent.config import settings
from sdn_agent.controller import ControllerClient
from sdn_agent.errors import AgentNotLaunchedError
from sdn_agent.executor import NodeExecutor, get_node_executor
from sdn_agent.ipam import AddressAllocator, SubnetAddressAllocator
from sdn_agent.network import (
    AttachResult,
    BridgeBinder,
    ContainerAttachmentOrchestrator,
    NetworkProvisioner,
    NodeConfigurator,
    ProvisioningResult,
    PublicAddressMapper,
    SubnetManager,
)
from sdn_agent.parsers import NodeRoutes
from sdn_agent.registry import EntityRegistry, InMemoryRegistry
from sdn_agent.templates import TemplateRenderer

logger = logging.getLogger(__name__)


class SdnVeAgent:
    """Per-node agent lifecycle: customize, launch, then attach containers.

    Launch must complete before any attach; attaches may then run
    concurrently.
    """

    def __init__(
        self,
        executor: NodeExecutor | None = None,
        controller: ControllerClient | None = None,
        allocator: AddressAllocator | None = None,
        registry: EntityRegistry | None = None,
        renderer: TemplateRenderer | None = None,
        activity: ActivityTracker | None = None,
        application_id: str | None = None,
    ):
        self.application_id = application_id or settings.application_id
        self.executor = executor or get_node_executor()
        self.controller = controller or ControllerClient()
        self.allocator = allocator or SubnetAddressAllocator()
        self.registry = registry or InMemoryRegistry()
        self.renderer = renderer or TemplateRenderer()
        self.activity = activity or get_activity_tracker()

        self.node = NodeConfigurator(self.executor, self.renderer)
        self.provisioner = NetworkProvisioner(self.controller, self.renderer, self.application_id)
        self.subnets = SubnetManager(
            self.controller, self.renderer, self.application_id,
            allocator=self.allocator, activity=self.activity,
        )
        self.bridge = BridgeBinder(self.executor, self.controller, self.renderer, self.provisioner)
        self.mapper = PublicAddressMapper(self.controller, self.renderer)
        self.attacher = ContainerAttachmentOrchestrator(
            self.executor, self.allocator, self.registry, self.mapper, activity=self.activity,
        )

        self._launch_lock = threading.Lock()
        self._provisioning: ProvisioningResult | None = None

    @property
    def provisioning(self) -> ProvisioningResult | None:
        return self._provisioning

    def customize(self) -> NodeRoutes:
        with self.activity.blocking("Customizing node network"):
            return self.node.customize()

    def launch(self) -> ProvisioningResult:
        """Launch the bridge once; later calls return the first result."""
        with self._launch_lock:
            if self._provisioning is None:
                with self.activity.blocking("Launching overlay bridge"):
                    self._provisioning = self.bridge.launch()
            return self._provisioning

    def is_running(self) -> bool:
        return self.node.is_running()

    def stop(self) -> None:
        self.node.stop()

    def create_subnet(self, virtual_network_id: str, subnet_id: str, cidr: IPv4Network | str) -> IPv4Address:
        return self.subnets.create_virtual_subnet(virtual_network_id, subnet_id, ipaddress.IPv4Network(cidr, strict=False))

    def _require_provisioning(self, operation: str) -> ProvisioningResult:
        provisioning = self._provisioning
        if provisioning is None:
            raise AgentNotLaunchedError(operation)
        return provisioning

    def attach(self, container_id: str, subnet_id: str) -> AttachResult:
        provisioning = self._require_provisioning(f"attaching {container_id}")
        return self.attacher.attach(provisioning, container_id, subnet_id)

    def attach_network(self, container_id: str, subnet_id: str) -> IPv4Address:
        """Attach a container and return its private address."""
        return self.attach(container_id, subnet_id).address

    def close(self) -> None:
        self.controller.close()
