"""Controller and agent API schemas.

These Pydantic models define the data exchanged with the SDN controller
and with callers of the agent's HTTP API.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from sdn_agent.version import __version__


# --- Controller responses ---

class ControllerNetwork(BaseModel):
    """One entry of the controller's network listing."""
    network_id: int
    domain_id: int
    name: str


class NetworkListResponse(BaseModel):
    """Controller -> Agent: GET /networks."""
    networks: list[ControllerNetwork]


# --- Agent API ---

class AgentInfo(BaseModel):
    """Agent identification."""
    agent_id: str
    name: str
    application_id: str
    controller_host: str
    version: str = __version__
    started_at: datetime | None = None


class ProvisioningInfo(BaseModel):
    """Result of the launch sequence."""
    network_id: int
    domain_id: int
    network_name: str
    tenant_id: str
    bridge_name: str
    agent_address: str


class CreateSubnetRequest(BaseModel):
    """Caller -> Agent: register a subnet on the controller."""
    virtual_network_id: str
    subnet_id: str
    cidr: str  # e.g. "50.0.0.0/24"


class CreateSubnetResponse(BaseModel):
    subnet_id: str
    cidr: str
    gateway_ip: str


class VirtualNetworkRequest(BaseModel):
    """Caller -> Agent: declare a virtual network and its public access policy."""
    subnet_id: str
    cidr: str | None = None
    enable_public_access: bool = False
    public_cidr: str | None = None


class ContainerRequest(BaseModel):
    """Caller -> Agent: declare a container entity."""
    container_id: str


class AttachNetworkRequest(BaseModel):
    subnet_id: str


class AttachNetworkResponse(BaseModel):
    container_id: str
    subnet_id: str
    address: str
    public_address: str | None = None
    public_cidr: str | None = None


class RunningResponse(BaseModel):
    running: bool


class ActivityResponse(BaseModel):
    """Operations currently in progress on this agent."""
    in_progress: list[str] = Field(default_factory=list)
