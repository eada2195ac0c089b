"""Controller-side view of build-service agents: nodes, workers and output sinks."""
from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import List, Optional, TextIO

logger = logging.getLogger(__name__)


@dataclass
class Node:
    """A node registered with the controller."""

    name: str
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be a non-empty string")
        if self.display_name is None:
            self.display_name = self.name


@dataclass
class EphemeralNode(Node):
    """A single-use node created for one build-service job and owned by this package."""

    label: str = ""


class NodeRegistry:
    """Deprovisions nodes owned by this package."""

    def remove_node(self, node: Node) -> None:
        raise NotImplementedError


class BuildWorker:
    """An agent that is hosted inside a build-service job.

    The job id is written by the launch for this worker and cleared by the
    disconnect hook; both go through the same lock.
    """

    def __init__(self, name: str, secret: str, node: Optional[Node] = None) -> None:
        if not name or not isinstance(name, str):
            raise ValueError("name must be a non-empty string")
        if not secret or not isinstance(secret, str):
            raise ValueError("secret must be a non-empty string")

        self.name = name
        self.secret = secret
        self.node = node
        self._job_id: Optional[str] = None
        self._lock = threading.Lock()
        self._online = False
        self._accepting_tasks = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @property
    def job_id(self) -> Optional[str]:
        with self._lock:
            return self._job_id

    def set_job_id(self, job_id: Optional[str]) -> None:
        """Record the job hosting this worker, or clear it with None."""
        with self._lock:
            if job_id and self._job_id and job_id != self._job_id:
                logger.warning(f"Replacing build ID {self._job_id} with {job_id} on {self.name}")
            self._job_id = job_id or None

    def is_online(self) -> bool:
        return self._online

    def is_accepting_tasks(self) -> bool:
        return self._accepting_tasks

    def mark_connected(self) -> None:
        self._online = True

    def mark_disconnected(self) -> None:
        self._online = False

    def set_accepting_tasks(self, accepting: bool) -> None:
        self._accepting_tasks = accepting


class LaunchListener:
    """Output sink attached to a single launch."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stderr
        self.messages: List[str] = []

    def info(self, message: str) -> None:
        self._write(message)

    def fatal_error(self, message: str) -> None:
        self._write(f"FATAL: {message}")

    def _write(self, line: str) -> None:
        self.messages.append(line)
        print(line, file=self.stream)
        self.stream.flush()
