"""Exceptions raised while launching build-service agents."""


class LaunchError(RuntimeError):
    """Base class for launch failures."""


class ConfigError(LaunchError, ValueError):
    """Raised when cloud or service configuration is invalid."""


class BuildServiceError(LaunchError):
    """Raised when a build-service API call fails."""


class ControllerApiError(LaunchError):
    """Raised when a controller API call fails."""


class AgentConnectionTimeout(LaunchError):
    """Raised when the agent does not connect within the configured timeout."""

    def __init__(self, worker_name: str, job_id: str) -> None:
        super().__init__(
            f"Timed out while waiting for agent {worker_name} to start for build ID: {job_id}"
        )
        self.worker_name = worker_name
        self.job_id = job_id


class JobTerminatedError(LaunchError):
    """Raised when the remote job finished before its agent connected."""

    def __init__(self, worker_name: str, job_id: str, status: str) -> None:
        super().__init__(
            f"Build {job_id} for agent {worker_name} ended with status {status} before the agent connected"
        )
        self.worker_name = worker_name
        self.job_id = job_id
        self.status = status
