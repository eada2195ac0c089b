"""REST access to the CI controller: agent connection state and node removal."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urljoin

import requests

from buildcloud.codebuild.errors import ControllerApiError
from buildcloud.codebuild.workers import BuildWorker, Node, NodeRegistry

logger = logging.getLogger(__name__)


class ControllerClient(NodeRegistry):
    """Client for the controller's computer API."""

    def __init__(
        self,
        base_url: str,
        user: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = 30,
    ) -> None:
        """
        Initialize controller client.

        Args:
            base_url: Controller root URL. Required.
            user: User name for API token authentication. Optional.
            token: API token. Required when user is set.
            timeout: Request timeout in seconds. Default: 30.

        Raises:
            ValueError: If base_url is empty, timeout is invalid or only one of user/token is given.
        """
        if not base_url or not isinstance(base_url, str):
            raise ValueError("base_url must be a non-empty string")
        if timeout <= 0:
            raise ValueError("timeout must be a positive integer")
        if bool(user) != bool(token):
            raise ValueError("user and token must be provided together")

        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.timeout = timeout
        self.session = requests.Session()
        if user and token:
            self.session.auth = (user, token)

    def _computer_url(self, name: str, suffix: str) -> str:
        return urljoin(self.base_url, f"computer/{quote(name, safe='')}/{suffix}")

    def get_computer(self, name: str) -> Dict[str, Any]:
        """
        Fetch the controller's view of an agent.

        Args:
            name: Node name. Required.

        Returns:
            Computer JSON including ``offline`` and ``acceptingTasks``.

        Raises:
            ControllerApiError: If the request fails.
        """
        if not name:
            raise ValueError("name must be a non-empty string")

        url = self._computer_url(name, "api/json")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "unknown"
            raise ControllerApiError(f"Controller request for {name} failed with status {status}") from exc
        except (requests.RequestException, ValueError) as exc:
            raise ControllerApiError(f"Request to {url} failed: {exc}") from exc

    def remove_node(self, node: Node) -> None:
        """Delete a node from the controller. A node that is already gone is not an error."""
        url = self._computer_url(node.name, "doDelete")
        try:
            response = self.session.post(url, timeout=self.timeout)
            if response.status_code == 404:
                logger.info(f"Node {node.name} already removed")
                return
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ControllerApiError(f"Failed to remove node {node.name}: {exc}") from exc
        logger.info(f"Node {node.name} removed from controller")


class ControllerWorker(BuildWorker):
    """A BuildWorker whose connection state is read from the controller."""

    def __init__(self, name: str, secret: str, client: ControllerClient, node: Optional[Node] = None) -> None:
        super().__init__(name, secret, node=node)
        self.client = client

    def is_online(self) -> bool:
        try:
            computer = self.client.get_computer(self.name)
        except ControllerApiError as e:
            # The node may not be visible yet; keep waiting
            logger.debug(f"Controller state for {self.name} unavailable: {e}")
            return False

        self._accepting_tasks = bool(computer.get("acceptingTasks", False))
        self._online = not computer.get("offline", True)
        return self._online
