"""Agent configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Agent settings loaded from environment variables."""

    # Agent identity
    agent_id: str = ""  # Auto-generated if not set
    agent_name: str = "default"
    agent_host: str = "0.0.0.0"
    agent_port: int = 8001

    # Deployment identity: used as network name and tenant id
    application_id: str = "default"

    # SDN controller connection
    controller_host: str = "127.0.0.1"
    controller_scheme: str = "http"
    controller_username: str = "admin"
    controller_password: str = ""
    controller_timeout: float = 30.0  # seconds, per request

    # Retry only covers requests that never reached the controller
    controller_max_retries: int = 2
    controller_retry_backoff_base: float = 1.0
    controller_retry_backoff_max: float = 10.0

    # Node resources
    network_setup_script_url: str = ""  # Path to network.sh, staged once per node
    configuration_xml_template: str = "dove.xml"  # Packaged template name or path
    configuration_xml_target: str = "/etc/dove.xml"
    run_dir: str = "/var/lib/sdn-agent"

    # Node command execution
    node_host: str = ""  # SSH target; empty runs commands locally
    use_sudo: bool = True
    command_timeout: float = 300.0

    # This node's addresses
    sdn_agent_address: str = ""
    subnet_address: str = ""
    management_bridge: str = "br_mgmt_1"
    management_interface: str = "eth0"

    # Container addressing
    mac_vendor_prefix: str = "fa:16:50"
    port_id_length: int = 8

    # Bridge verification
    bridge_prefix: str = "dovebr_"
    bridge_success_marker: str = "successfully"

    # Local daemons
    agent_daemon: str = "doved"
    container_engine_service: str = "docker"
    restart_success_marker: str = "OK"
    restart_success_count: int = 2  # restart touches two sub-services
    ping_count: int = 10

    # Logging configuration
    log_format: str = "json"  # "json" or "text"
    log_level: str = "INFO"

    class Config:
        env_prefix = "SDN_AGENT_"


settings = Settings()
