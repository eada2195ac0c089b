"""Build-service integration for ephemeral CI agents."""

from buildcloud.codebuild.api import BuildServiceClient, RemoteBuildService
from buildcloud.codebuild.config import CloudConfig, ServiceConfig, get_service_config, load_cloud_config
from buildcloud.codebuild.controller import ControllerClient, ControllerWorker
from buildcloud.codebuild.errors import (
    AgentConnectionTimeout,
    BuildServiceError,
    ConfigError,
    ControllerApiError,
    JobTerminatedError,
    LaunchError,
)
from buildcloud.codebuild.launcher import InboundAgentLauncher, LaunchOrchestrator
from buildcloud.codebuild.parameters import agent_download_url, build_parameters, select_connection_mode
from buildcloud.codebuild.types import (
    TERMINAL_STATUSES,
    BootstrapParameter,
    ConnectionMode,
    JobStatus,
    LaunchRequest,
    StartJobRequest,
)
from buildcloud.codebuild.waiter import AgentConnectionWaiter
from buildcloud.codebuild.workers import BuildWorker, EphemeralNode, LaunchListener, Node, NodeRegistry

__all__ = [
    "AgentConnectionTimeout",
    "AgentConnectionWaiter",
    "BootstrapParameter",
    "BuildServiceClient",
    "BuildServiceError",
    "BuildWorker",
    "CloudConfig",
    "ConfigError",
    "ConnectionMode",
    "ControllerApiError",
    "ControllerClient",
    "ControllerWorker",
    "EphemeralNode",
    "InboundAgentLauncher",
    "JobStatus",
    "JobTerminatedError",
    "LaunchError",
    "LaunchListener",
    "LaunchOrchestrator",
    "LaunchRequest",
    "Node",
    "NodeRegistry",
    "RemoteBuildService",
    "ServiceConfig",
    "StartJobRequest",
    "TERMINAL_STATUSES",
    "agent_download_url",
    "build_parameters",
    "get_service_config",
    "load_cloud_config",
    "select_connection_mode",
]
