"""Base network customization of the node and daemon health checks.

Customization moves the node's management interface onto a bridge, keeps
the overlay route, and stages the files the agent daemon and the attach
script need.
"""

from __future__ import annotations

import logging
from pathlib import Path
from textwrap import dedent

from sdn_agent.config import settings
from sdn_agent.executor import NodeExecutor
from sdn_agent.network.attach import network_script_path
from sdn_agent.parsers import NodeRoutes, parse_packet_loss, parse_routes
from sdn_agent.templates import TemplateRenderer

logger = logging.getLogger(__name__)

AGENT_NETMASK = "255.255.255.224"
NODE_NETMASK = "255.255.255.192"
OVERLAY_NETWORK = "10.0.0.0"
OVERLAY_NETMASK = "255.0.0.0"
NAMESERVER = "8.8.8.8"


class NodeConfigurator:
    """Prepares the node before the overlay bridge is launched."""

    def __init__(self, executor: NodeExecutor, renderer: TemplateRenderer):
        self.executor = executor
        self.renderer = renderer

    def discover_routes(self) -> NodeRoutes:
        result = self.executor.run_checked(["netstat", "-rn"])
        routes = parse_routes(result.stdout, settings.management_interface, settings.subnet_address)
        logger.debug(f"Found gateway {routes.gateway} and address {routes.address}")
        return routes

    def bridge_script(self, routes: NodeRoutes) -> str:
        """Shell script that rehomes the management interface onto the bridge."""
        bridge = settings.management_bridge
        iface = settings.management_interface
        return dedent(f"""\
            brctl addbr {bridge}
            ifconfig {bridge} {settings.sdn_agent_address} netmask {AGENT_NETMASK}
            ifconfig {iface} 0.0.0.0
            ifconfig {bridge}:1 {routes.address} netmask {NODE_NETMASK}
            brctl addif {bridge} {iface}
            route add -net {OVERLAY_NETWORK} netmask {OVERLAY_NETMASK} gw {routes.gateway}
            mv /etc/sysconfig/network-scripts/ifcfg-{iface} /etc/sysconfig/network-scripts/_ifcfg-{iface}
            service dhcpd stop || true
            service libvirtd start || service libvirt-bin start || true
            echo 'nameserver {NAMESERVER}' > /etc/resolv.conf
            """)

    def stage_configuration(self) -> None:
        """Render the controller XML and stage it for the agent daemon."""
        contents = self.renderer.render(settings.configuration_xml_template, {
            "agentName": settings.agent_name,
            "agentAddress": settings.sdn_agent_address,
            "managementBridge": settings.management_bridge,
            "controllerHost": settings.controller_host,
        })
        self.executor.put_file(settings.configuration_xml_target, contents, sudo=True)
        logger.info(f"Staged controller configuration to {settings.configuration_xml_target}")

    def stage_network_script(self) -> str:
        """Copy the network-setup script to the node and make it executable."""
        if not settings.network_setup_script_url:
            raise ValueError("network_setup_script_url is not configured")
        contents = Path(settings.network_setup_script_url).read_text()
        target = network_script_path()
        self.executor.run_checked(["mkdir", "-p", settings.run_dir], sudo=True)
        self.executor.put_file(target, contents, mode="755", sudo=True)
        logger.info(f"Staged network setup script to {target}")
        return target

    def customize(self) -> NodeRoutes:
        routes = self.discover_routes()
        self.executor.run_script(self.bridge_script(routes), sudo=True)
        self.stage_configuration()
        self.stage_network_script()
        return routes

    def is_running(self) -> bool:
        """Check controller reachability and the agent daemon status."""
        ping = self.executor.run(["ping", "-c", str(settings.ping_count), "-q", settings.controller_host])
        loss = parse_packet_loss(ping.stdout)
        if loss is None:
            logger.warning(f"Could not determine packet loss to controller {settings.controller_host}")
        elif loss > 0:
            logger.warning(f"Packet loss to controller {settings.controller_host}: {loss:.0%}")

        status = self.executor.run(["status", settings.agent_daemon], sudo=True)
        return "running" in status.stdout

    def stop(self) -> None:
        self.executor.run_checked(["stop", settings.agent_daemon], sudo=True)
        logger.info(f"Stopped {settings.agent_daemon}")
