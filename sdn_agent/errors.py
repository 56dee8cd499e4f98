"""Exception hierarchy for overlay provisioning and container attachment.

Every failure aborts the enclosing operation. Nothing here is retried by
the provisioning core; ``retriable`` only tells callers whether a repeat
could plausibly succeed without manual cleanup.
"""

from __future__ import annotations


class SdnAgentError(Exception):
    """Base exception for agent provisioning errors."""

    def __init__(self, message: str, resource: str | None = None, retriable: bool = False):
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.retriable = retriable


class TransportError(SdnAgentError):
    """Controller unreachable or returned a malformed/failed response."""

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        status_code: int | None = None,
        retriable: bool = False,
    ):
        super().__init__(message, resource, retriable=retriable)
        self.status_code = status_code


# --- Inconsistent provisioning state (always fatal) ---

class StateMismatchError(SdnAgentError):
    """Node or controller state contradicts what provisioning expects."""


class BridgeCreationFailed(StateMismatchError):
    """Controller response to bridge creation lacked the success marker."""

    def __init__(self, network_id: int, output: str = ""):
        super().__init__(f"Failed to export network {network_id}", resource=str(network_id))
        self.network_id = network_id
        self.output = output


class BridgeIdMismatch(StateMismatchError):
    """Bridge found on the node does not carry the created network id."""

    def __init__(self, found: str | None, expected: int | None = None):
        super().__init__(f"Incorrect network ID found: {found}", resource=found)
        self.found = found
        self.expected = expected


class ServiceRestartFailed(StateMismatchError):
    """Container engine restart did not report the expected successes."""

    def __init__(self, service: str, output: str, successes: int):
        super().__init__(
            f"Failed to restart {service} service ({successes} successes): {output}",
            resource=service,
        )
        self.service = service
        self.output = output
        self.successes = successes


# --- Missing entities ---

class NotFoundError(SdnAgentError):
    """A required entity could not be located."""


class NetworkNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"Cannot find network: {name}", resource=name)
        self.name = name


class VirtualNetworkNotFound(NotFoundError):
    def __init__(self, subnet_id: str):
        super().__init__(f"Cannot find virtual network entity for {subnet_id}", resource=subnet_id)
        self.subnet_id = subnet_id


class ContainerEntityNotFound(NotFoundError):
    def __init__(self, container_id: str):
        super().__init__(f"Cannot find container entity for {container_id}", resource=container_id)
        self.container_id = container_id


# --- Other failures ---

class AllocationError(SdnAgentError):
    """Address allocator could not hand out an address."""


class NodeCommandError(SdnAgentError):
    """A node command that must succeed exited non-zero."""

    def __init__(self, command: str, returncode: int, stderr: str = ""):
        super().__init__(f"Command failed with exit code {returncode}: {command}: {stderr.strip()}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class AgentNotLaunchedError(SdnAgentError):
    """Operation requires the bridge to be provisioned first."""

    def __init__(self, operation: str):
        super().__init__(f"Agent must be launched before {operation}")
