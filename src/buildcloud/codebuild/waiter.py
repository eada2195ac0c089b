"""Wait for an agent hosted in a build-service job to connect back to the controller."""
import logging
import time

from buildcloud.codebuild.api import RemoteBuildService
from buildcloud.codebuild.errors import AgentConnectionTimeout, JobTerminatedError
from buildcloud.codebuild.types import TERMINAL_STATUSES
from buildcloud.codebuild.workers import BuildWorker

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = 500
STATUS_CHECK_INTERVAL_MS = 30 * 1000


class AgentConnectionWaiter:
    """Polls the worker every 500 ms and the remote job roughly every 30 s."""

    def __init__(self, service: RemoteBuildService) -> None:
        self.service = service

    def wait(self, worker: BuildWorker, job_id: str, timeout_seconds: int) -> None:
        """
        Block until the worker is online and accepting tasks.

        Args:
            worker: Agent expected to connect.
            job_id: Build hosting the agent.
            timeout_seconds: Connection budget.

        Raises:
            AgentConnectionTimeout: If the agent did not connect in time.
            JobTerminatedError: If the build reached a terminal status first.
            BuildServiceError: If the status check itself fails.
        """
        logger.info("Waiting for agent '%s' to connect to build ID: %s...", worker.name, job_id)

        since_status_check = 0
        for _ in range(timeout_seconds * (1000 // POLL_INTERVAL_MS)):
            if worker.is_online() and worker.is_accepting_tasks():
                logger.info("Agent '%s' connected to build ID: %s.", worker.name, job_id)
                return

            time.sleep(POLL_INTERVAL_MS / 1000)
            since_status_check += POLL_INTERVAL_MS

            # Fail fast when the build already finished on the remote side
            if since_status_check > STATUS_CHECK_INTERVAL_MS:
                since_status_check = 0
                status = self.service.check_status(job_id, TERMINAL_STATUSES)
                if status is not None:
                    logger.warning(
                        "Build %s reached status %s before agent '%s' connected",
                        job_id,
                        status.value,
                        worker.name,
                    )
                    raise JobTerminatedError(worker.name, job_id, status.value)

        raise AgentConnectionTimeout(worker.name, job_id)
