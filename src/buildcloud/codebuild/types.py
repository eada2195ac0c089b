"""Type definitions for build-service launches."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from buildcloud.codebuild.config import CloudConfig
    from buildcloud.codebuild.workers import BuildWorker


class ConnectionMode(str, Enum):
    """Strategy the agent uses to reach the controller."""

    DIRECT = "direct"
    WEB_SOCKET = "websocket"
    TUNNEL_OR_DEFAULT = "tunnel"


class JobStatus(str, Enum):
    """Remote job statuses reported by the build service."""

    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    FAULT = "FAULT"
    STOPPED = "STOPPED"
    TIMED_OUT = "TIMED_OUT"


TERMINAL_STATUSES = frozenset(
    {
        JobStatus.FAILED,
        JobStatus.FAULT,
        JobStatus.STOPPED,
        JobStatus.SUCCEEDED,
        JobStatus.TIMED_OUT,
    }
)

NO_SOURCE = "NO_SOURCE"


@dataclass(frozen=True, slots=True)
class BootstrapParameter:
    """A single environment variable handed to the remote job."""

    name: str
    value: str
    type: str = "PLAINTEXT"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "value": self.value, "type": self.type}


@dataclass(slots=True)
class StartJobRequest:
    """Payload for starting a remote job that hosts one agent."""

    project_name: str
    image: str
    environment_type: str
    compute_type: str
    build_spec: str
    environment_variables: List[BootstrapParameter] = field(default_factory=list)
    source_type: str = NO_SOURCE
    privileged_mode: bool = True

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "projectName": self.project_name,
            "sourceTypeOverride": self.source_type,
            "imageOverride": self.image,
            "environmentTypeOverride": self.environment_type,
            "privilegedModeOverride": self.privileged_mode,
            "environmentVariablesOverride": [p.to_dict() for p in self.environment_variables],
            "computeTypeOverride": self.compute_type,
        }
        # an empty override would replace the project buildspec with nothing
        if self.build_spec:
            payload["buildspecOverride"] = self.build_spec
        return payload


@dataclass(slots=True)
class LaunchRequest:
    """Ties one worker to the cloud configuration for a single attempt."""

    worker: "BuildWorker"
    config: "CloudConfig"
    job_id: Optional[str] = None
