"""Launch lifecycle for one build-service agent: start → wait → cleanup."""
import logging
from typing import Optional

from buildcloud.codebuild.api import RemoteBuildService
from buildcloud.codebuild.config import CloudConfig
from buildcloud.codebuild.parameters import build_parameters
from buildcloud.codebuild.types import LaunchRequest, StartJobRequest
from buildcloud.codebuild.waiter import AgentConnectionWaiter
from buildcloud.codebuild.workers import BuildWorker, EphemeralNode, LaunchListener, Node, NodeRegistry

logger = logging.getLogger(__name__)


class InboundAgentLauncher:
    """Connect/disconnect contract for agents that dial in to the controller."""

    def __init__(self) -> None:
        self.launched = False

    def is_launch_supported(self) -> bool:
        # an inbound agent can be launched until it has connected once
        return not self.launched

    def before_disconnect(self, worker: BuildWorker) -> None:
        logger.debug("Agent '%s' is disconnecting", worker.name)


class LaunchOrchestrator:
    """Start a build-service job for one agent and wait for it to connect.

    One orchestrator is created per worker; the config and the build service
    client may be shared across orchestrators.
    """

    def __init__(
        self,
        config: CloudConfig,
        service: RemoteBuildService,
        registry: Optional[NodeRegistry] = None,
        waiter: Optional[AgentConnectionWaiter] = None,
    ) -> None:
        if config is None:
            raise ValueError("config is required")
        if service is None:
            raise ValueError("service is required")

        self.config = config
        self.service = service
        self.registry = registry
        self.waiter = waiter or AgentConnectionWaiter(service)
        self.agent = InboundAgentLauncher()

    @property
    def launched(self) -> bool:
        return self.agent.launched

    def is_launch_supported(self) -> bool:
        return self.agent.is_launch_supported()

    def launch(self, worker: BuildWorker, listener: LaunchListener) -> None:
        """
        Launch the worker inside a new build-service job.

        Failures are reported to ``listener`` and cleaned up here; nothing is
        raised to the caller.

        Args:
            worker: Agent to host. Anything other than a BuildWorker with a node is ignored.
            listener: Output sink for this launch.
        """
        self.agent.launched = False
        if not isinstance(worker, BuildWorker):
            logger.debug(
                "Not launching %s since it is not the correct type (%s)",
                worker,
                BuildWorker.__name__,
            )
            return

        node = worker.node
        if node is None:
            logger.error("Not launching %s since it is missing a node.", worker.name)
            return

        logger.info("Launching %s with %s", worker.name, listener)
        request = LaunchRequest(worker=worker, config=self.config)

        try:
            start_request = self._start_request(request)
            request.job_id = self.service.start(start_request)
            worker.set_job_id(request.job_id)

            self.waiter.wait(worker, request.job_id, self.config.agent_timeout)
        except Exception as e:
            self._cleanup(request, node, listener, e)
        else:
            self.agent.launched = True
            self._notify(listener.info, f"Agent {worker.name} connected from build {request.job_id}")

    def before_disconnect(self, worker: BuildWorker, listener: Optional[LaunchListener] = None) -> None:
        """Clear the worker's build ID before the controller disconnects it."""
        if isinstance(worker, BuildWorker):
            worker.set_job_id(None)
            self.agent.before_disconnect(worker)

    def _start_request(self, request: LaunchRequest) -> StartJobRequest:
        config = request.config
        return StartJobRequest(
            project_name=config.project_name,
            image=config.docker_image,
            environment_type=config.environment_type,
            compute_type=config.compute_type,
            build_spec=config.build_spec,
            environment_variables=build_parameters(config, request.worker),
        )

    def _cleanup(self, request: LaunchRequest, node: Node, listener: LaunchListener, error: Exception) -> None:
        if request.job_id is not None:
            self._stop_job(request.job_id)

        request.worker.set_job_id(None)
        logger.error("Exception while starting build: %s. Exception %r", error, error)
        self._notify(listener.fatal_error, f"Exception while starting build: {error}")

        if isinstance(node, EphemeralNode):
            self._deprovision(node)

    @staticmethod
    def _notify(write, message: str) -> None:
        try:
            write(message)
        except Exception as e:
            logger.error("Failed to write to launch output: %s", e)

    def _stop_job(self, job_id: str) -> None:
        try:
            self.service.stop(job_id)
        except Exception as e:
            logger.error("Failed to stop build %s: %s", job_id, e)

    def _deprovision(self, node: EphemeralNode) -> None:
        if self.registry is None:
            logger.warning("No node registry configured; cannot terminate agent %s", node.display_name)
            return
        try:
            self.registry.remove_node(node)
            logger.info("Terminated agent %s", node.display_name)
        except Exception as e:
            logger.error("Failed to terminate agent: %s. Exception: %s", node.display_name, e)
