"""SDN VE Agent - per-node overlay network agent.

This agent runs on each container host and handles:
- Base network customization of the node
- Launching the overlay bridge against the SDN controller
- Subnet registration
- Attaching containers to the overlay, with optional public addresses

Endpoints are synchronous: FastAPI runs them in its thread pool, so attach
requests for different containers proceed concurrently and each blocks
until the full sequence completes or fails.
"""

from __future__ import annotations

import ipaddress
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from sdn_agent.agent import SdnVeAgent
from sdn_agent.config import settings
from sdn_agent.errors import (
    AgentNotLaunchedError,
    AllocationError,
    NotFoundError,
    SdnAgentError,
    StateMismatchError,
    TransportError,
)
from sdn_agent.logging_config import setup_agent_logging
from sdn_agent.network import ProvisioningResult
from sdn_agent.registry import InMemoryRegistry
from sdn_agent.schemas import (
    ActivityResponse,
    AgentInfo,
    AttachNetworkRequest,
    AttachNetworkResponse,
    ContainerRequest,
    CreateSubnetRequest,
    CreateSubnetResponse,
    ProvisioningInfo,
    RunningResponse,
    VirtualNetworkRequest,
)

# Generate agent ID if not configured
AGENT_ID = settings.agent_id or str(uuid.uuid4())[:8]
AGENT_STARTED_AT = datetime.now(timezone.utc)

setup_agent_logging(AGENT_ID)
logger = logging.getLogger(__name__)

# Agent and registry (lazy initialized)
_agent: SdnVeAgent | None = None
_registry: InMemoryRegistry | None = None


def get_registry() -> InMemoryRegistry:
    global _registry
    if _registry is None:
        _registry = InMemoryRegistry()
    return _registry


def get_agent() -> SdnVeAgent:
    """Lazy-initialize the node agent."""
    global _agent
    if _agent is None:
        _agent = SdnVeAgent(registry=get_registry())
    return _agent


def error_status(error: SdnAgentError) -> int:
    """HTTP status for a provisioning error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (StateMismatchError, AgentNotLaunchedError)):
        return 409
    if isinstance(error, TransportError):
        return 502
    if isinstance(error, AllocationError):
        return 507
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"SDN agent {AGENT_ID} starting for application {settings.application_id}")
    yield
    if _agent is not None:
        _agent.close()
    logger.info("SDN agent stopped")


app = FastAPI(title="SDN VE Agent", lifespan=lifespan)


@app.exception_handler(SdnAgentError)
async def sdn_agent_error_handler(request: Request, exc: SdnAgentError) -> JSONResponse:
    status = error_status(exc)
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "resource": exc.resource,
            "retriable": exc.retriable,
        },
    )


@app.get("/health")
def health():
    return {"status": "ok", "agent_id": AGENT_ID}


@app.get("/info")
def info() -> AgentInfo:
    return AgentInfo(
        agent_id=AGENT_ID,
        name=settings.agent_name,
        application_id=settings.application_id,
        controller_host=settings.controller_host,
        started_at=AGENT_STARTED_AT,
    )


@app.get("/activity")
def activity() -> ActivityResponse:
    return ActivityResponse(in_progress=get_agent().activity.current())


@app.post("/customize")
def customize() -> dict:
    routes = get_agent().customize()
    return {"address": routes.address, "gateway": routes.gateway}


def provisioning_info(result: ProvisioningResult) -> ProvisioningInfo:
    return ProvisioningInfo(
        network_id=result.network_id,
        domain_id=result.domain_id,
        network_name=result.network_name,
        tenant_id=result.tenant_id,
        bridge_name=result.bridge_name,
        agent_address=result.agent_address,
    )


@app.post("/launch")
def launch() -> ProvisioningInfo:
    return provisioning_info(get_agent().launch())


@app.get("/provisioning")
def provisioning() -> ProvisioningInfo:
    result = get_agent().provisioning
    if result is None:
        raise HTTPException(status_code=404, detail="Agent has not been launched")
    return provisioning_info(result)


@app.get("/running")
def running() -> RunningResponse:
    return RunningResponse(running=get_agent().is_running())


@app.post("/stop")
def stop() -> dict:
    get_agent().stop()
    return {"stopped": True}


@app.post("/subnets")
def create_subnet(request: CreateSubnetRequest) -> CreateSubnetResponse:
    try:
        cidr = ipaddress.IPv4Network(request.cidr, strict=False)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid CIDR {request.cidr}: {e}")
    gateway = get_agent().create_subnet(request.virtual_network_id, request.subnet_id, cidr)
    return CreateSubnetResponse(subnet_id=request.subnet_id, cidr=str(cidr), gateway_ip=str(gateway))


@app.post("/virtual-networks")
def register_virtual_network(request: VirtualNetworkRequest) -> dict:
    try:
        config = get_registry().register_virtual_network(
            request.subnet_id,
            cidr=request.cidr,
            enable_public_access=request.enable_public_access,
            public_cidr=request.public_cidr,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"subnet_id": config.subnet_id, "enable_public_access": config.enable_public_access}


@app.post("/containers")
def register_container(request: ContainerRequest) -> dict:
    handle = get_registry().register_container(request.container_id)
    return {"container_id": handle.container_id}


@app.post("/containers/{container_id}/attach")
def attach_network(container_id: str, request: AttachNetworkRequest) -> AttachNetworkResponse:
    result = get_agent().attach(container_id, request.subnet_id)
    mapping = result.public_mapping
    return AttachNetworkResponse(
        container_id=container_id,
        subnet_id=request.subnet_id,
        address=str(result.address),
        public_address=str(mapping.public_address) if mapping else None,
        public_cidr=str(result.public_cidr) if result.public_cidr else None,
    )


# --- Entry point ---

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sdn_agent.main:app",
        host=settings.agent_host,
        port=settings.agent_port,
        reload=False,
    )
