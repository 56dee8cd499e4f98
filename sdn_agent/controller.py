"""Client for the SDN controller REST API.

Request bodies are rendered templates; responses are returned as text or,
for the network listing, validated into typed models. No business logic
lives here.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from sdn_agent.config import settings
from sdn_agent.errors import TransportError
from sdn_agent.schemas import ControllerNetwork, NetworkListResponse

logger = logging.getLogger(__name__)

# Controller API paths
NETWORKS_PATH = "v2.0/networks"
SUBNETS_PATH = "v2.0/subnets"
BRIDGE_PATH = "api/dove/vrmgr/vnids/vm_mgr"
SNAT_RULES_PATH = "api/dove/dgw/service/ext-gw"
FORWARDING_RULE_PATH = "api/dove/dgw/service/rule"
NETWORK_LIST_PATH = "networks"


def with_retry(
    func: Callable[..., Any],
    *args,
    max_retries: int | None = None,
    backoff_base: float | None = None,
    backoff_max: float | None = None,
    **kwargs,
) -> Any:
    """Call func, retrying with exponential backoff on connection failures.

    Only failures where the request never reached the controller are
    retried. Timeouts after sending and HTTP error statuses are not.
    """
    if max_retries is None:
        max_retries = settings.controller_max_retries
    if backoff_base is None:
        backoff_base = settings.controller_retry_backoff_base
    if backoff_max is None:
        backoff_max = settings.controller_retry_backoff_max

    for attempt in range(max_retries + 1):
        try:
            return func(*args, **kwargs)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            if attempt < max_retries:
                delay = min(backoff_base * (2 ** attempt), backoff_max)
                logger.warning(
                    f"Controller request failed (attempt {attempt + 1}/{max_retries + 1}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                time.sleep(delay)
            else:
                logger.error(f"Controller request failed after {max_retries + 1} attempts: {e}")
                raise TransportError(
                    f"Controller unreachable after {max_retries + 1} attempts: {e}", retriable=True
                ) from e


class ControllerClient:
    """Issues authenticated requests to the SDN controller."""

    def __init__(
        self,
        host: str | None = None,
        username: str | None = None,
        password: str | None = None,
        scheme: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.host = host or settings.controller_host
        self.max_retries = settings.controller_max_retries if max_retries is None else max_retries
        self._client = httpx.Client(
            base_url=f"{scheme or settings.controller_scheme}://{self.host}",
            auth=(
                username if username is not None else settings.controller_username,
                password if password is not None else settings.controller_password,
            ),
            timeout=timeout or settings.controller_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ControllerClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, api_path: str, content: str | None = None) -> httpx.Response:
        headers = {"Content-Type": "application/json"} if content is not None else None
        try:
            response = with_retry(
                self._client.request,
                method,
                f"/{api_path.lstrip('/')}",
                content=content,
                headers=headers,
                max_retries=self.max_retries,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Controller request {method} {api_path} failed: {e}", resource=api_path) from e

        if response.is_error:
            logger.error(f"Controller returned HTTP {response.status_code} for {method} {api_path}")
            raise TransportError(
                f"Controller returned HTTP {response.status_code} for {api_path}: {response.text}",
                resource=api_path,
                status_code=response.status_code,
            )
        return response

    def post(self, api_path: str, payload: str) -> str:
        """POST a rendered JSON payload and return the response text."""
        response = self._request("POST", api_path, content=payload)
        logger.debug(f"POST {api_path} -> HTTP {response.status_code}")
        return response.text

    def list_networks(self) -> list[ControllerNetwork]:
        """Return every network known to the controller.

        Raises:
            TransportError: If the controller is unreachable or the response
                is not a ``{"networks": [...]}`` object
        """
        response = self._request("GET", NETWORK_LIST_PATH)
        try:
            listing = NetworkListResponse.model_validate_json(response.text)
        except ValidationError as e:
            raise TransportError(f"Malformed network listing from controller: {e}", resource=NETWORK_LIST_PATH) from e
        return listing.networks
