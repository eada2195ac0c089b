"""Bootstrap environment variables for agents running inside build-service jobs.

The remote job's entrypoint reads these variables to start an inbound agent.
Three connection modes are supported and exactly one is chosen per launch:

* direct: the agent connects straight to the controller's TCP port and must
  not be given a URL or a tunnel;
* websocket: the agent connects over the controller URL with websockets;
* tunnel/default: the controller URL, optionally through a tunnel.
"""
from __future__ import annotations

from typing import List
from urllib.parse import urlsplit

from buildcloud.codebuild.config import CloudConfig
from buildcloud.codebuild.types import BootstrapParameter, ConnectionMode
from buildcloud.codebuild.workers import BuildWorker

DIRECT_CONNECTION = "JENKINS_DIRECT_CONNECTION"
INSTANCE_IDENTITY = "JENKINS_INSTANCE_IDENTITY"
PROTOCOLS = "JENKINS_PROTOCOLS"
PROXY_CREDENTIALS = "JENKINS_CODEBUILD_PROXY_CREDENTIALS"
NO_KEEP_ALIVE = "JENKINS_CODEBUILD_NOKEEPALIVE"
DISABLE_SSL_VALIDATION = "JENKINS_CODEBUILD_DISABLE_SSL_VALIDATION"
WEB_SOCKET = "JENKINS_WEB_SOCKET"
URL = "JENKINS_URL"
TUNNEL = "JENKINS_TUNNEL"
NO_RECONNECT = "JENKINS_CODEBUILD_NORECONNECT"
SECRET = "JENKINS_SECRET"
AGENT_NAME = "JENKINS_AGENT_NAME"
AGENT_URL = "JENKINS_CODEBUILD_AGENT_URL"

AGENT_JAR_PATH = "/jnlpJars/agent.jar"
MALFORMED_URL_VALUE = "ERROR"


def select_connection_mode(config: CloudConfig) -> ConnectionMode:
    """Pick the connection mode: direct, then websocket, then tunnel/default."""
    if config.direct:
        return ConnectionMode.DIRECT
    if config.web_socket:
        return ConnectionMode.WEB_SOCKET
    return ConnectionMode.TUNNEL_OR_DEFAULT


def build_parameters(config: CloudConfig, worker: BuildWorker) -> List[BootstrapParameter]:
    """
    Build the ordered bootstrap variables for one agent.

    Args:
        config: Cloud definition shared by all launches.
        worker: The agent the job will host.

    Returns:
        Ordered list of parameters; names are unique.
    """
    params: List[BootstrapParameter] = []
    mode = select_connection_mode(config)

    if mode is ConnectionMode.DIRECT:
        params.append(BootstrapParameter(DIRECT_CONNECTION, config.direct))
        params.append(BootstrapParameter(INSTANCE_IDENTITY, config.controller_identity))
        if config.protocols:
            params.append(BootstrapParameter(PROTOCOLS, config.protocols))
        params.extend(_transport_options(config))
    elif mode is ConnectionMode.WEB_SOCKET:
        params.append(BootstrapParameter(WEB_SOCKET, "true"))
        params.append(BootstrapParameter(URL, config.url))
    else:
        if config.tunnel:
            params.append(BootstrapParameter(TUNNEL, config.tunnel))
        params.append(BootstrapParameter(URL, config.url))
        params.extend(_transport_options(config))

    if config.no_reconnect:
        params.append(BootstrapParameter(NO_RECONNECT, "-noreconnect"))
    params.append(BootstrapParameter(SECRET, worker.secret))
    params.append(BootstrapParameter(AGENT_NAME, _display_name(worker)))
    params.append(BootstrapParameter(AGENT_URL, agent_download_url(config.url)))

    return params


def agent_download_url(base_url: str) -> str:
    """Return ``<scheme>://<authority>/jnlpJars/agent.jar`` for the controller URL, or ``"ERROR"``."""
    try:
        parts = urlsplit(base_url or "")
        _ = parts.port  # raises on a non-numeric port
    except (ValueError, TypeError, AttributeError):
        return MALFORMED_URL_VALUE

    if not parts.scheme or not parts.netloc:
        return MALFORMED_URL_VALUE
    return f"{parts.scheme}://{parts.netloc}{AGENT_JAR_PATH}"


def _transport_options(config: CloudConfig) -> List[BootstrapParameter]:
    options: List[BootstrapParameter] = []
    if config.proxy_credentials:
        options.append(BootstrapParameter(PROXY_CREDENTIALS, f"-proxyCredentials {config.proxy_credentials}"))
    if config.no_keep_alive:
        options.append(BootstrapParameter(NO_KEEP_ALIVE, "-noKeepAlive"))
    if config.disable_https_cert_validation:
        options.append(BootstrapParameter(DISABLE_SSL_VALIDATION, "-disableHttpsCertValidation"))
    return options


def _display_name(worker: BuildWorker) -> str:
    if worker.node is not None and worker.node.display_name:
        return worker.node.display_name
    return worker.name
