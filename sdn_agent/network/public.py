"""Public address mapping through controller SNAT and forwarding rules."""

from __future__ import annotations

import logging
from ipaddress import IPv4Address

from sdn_agent import templates
from sdn_agent.controller import FORWARDING_RULE_PATH, SNAT_RULES_PATH, ControllerClient
from sdn_agent.logging_config import log_context
from sdn_agent.network.base import ProvisioningResult, PublicMapping
from sdn_agent.templates import TemplateRenderer

logger = logging.getLogger(__name__)


class PublicAddressMapper:
    """Maps container private addresses to public ones on the controller."""

    def __init__(self, controller: ControllerClient, renderer: TemplateRenderer):
        self.controller = controller
        self.renderer = renderer

    def attach_public_address(
        self,
        provisioning: ProvisioningResult,
        container_id: str,
        private_address: IPv4Address,
        public_address: IPv4Address,
    ) -> PublicMapping:
        """Create the gateway rule set, then the forwarding rule.

        The controller only accepts a forwarding rule once the external
        gateway rule set for the network exists, so the order is fixed.
        """
        snat_rules = self.renderer.render(templates.CREATE_SNAT_RULES, {
            "networkId": provisioning.network_id,
            "domainId": provisioning.domain_id,
        })
        self.controller.post(SNAT_RULES_PATH, snat_rules)

        forwarding_rule = self.renderer.render(templates.CREATE_FORWARDING_RULE, {
            "networkId": provisioning.network_id,
            "sourceIp": private_address,
            "targetIp": public_address,
        })
        self.controller.post(FORWARDING_RULE_PATH, forwarding_rule)

        logger.info(
            f"Mapped {container_id} address {private_address} to public {public_address}",
            extra=log_context(
                network_id=provisioning.network_id,
                container_id=container_id,
                address=private_address,
                public_address=public_address,
            ),
        )
        return PublicMapping(
            container_id=container_id,
            private_address=private_address,
            public_address=public_address,
            network_id=provisioning.network_id,
            domain_id=provisioning.domain_id,
        )
