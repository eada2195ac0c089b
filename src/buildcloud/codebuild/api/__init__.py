"""Build-service API: the job-control contract and its REST client."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urljoin

import requests

from buildcloud.codebuild.errors import BuildServiceError
from buildcloud.codebuild.types import JobStatus, StartJobRequest

logger = logging.getLogger(__name__)


class RemoteBuildService:
    """Job-control operations a launch needs from the remote build service.

    Implementations must be safe to share between concurrent launches.
    """

    def start(self, request: StartJobRequest) -> str:
        """Start a remote job and return its id."""
        raise NotImplementedError

    def stop(self, job_id: str) -> None:
        """Stop a remote job. Stopping an already stopped job is not an error."""
        raise NotImplementedError

    def check_status(self, job_id: str, status_filter: Iterable[JobStatus]) -> Optional[JobStatus]:
        """Return the job status if it is one of ``status_filter``, otherwise None."""
        raise NotImplementedError


class BuildServiceClient(RemoteBuildService):
    """Client for the build service's job REST API."""

    def __init__(self, base_url: str, token: str, timeout: int = 30) -> None:
        if not token or not isinstance(token, str):
            raise ValueError("token must be a non-empty string")
        if timeout <= 0:
            raise ValueError("timeout must be a positive integer")

        self.base_url = self._ensure_trailing_slash(base_url)
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token.strip()}",
                "Content-Type": "application/json",
            }
        )

    @staticmethod
    def _ensure_trailing_slash(url: str) -> str:
        cleaned = (url or "").strip()
        if not cleaned:
            raise ValueError("URL cannot be empty")
        return cleaned if cleaned.endswith("/") else f"{cleaned}/"

    def start(self, request: StartJobRequest) -> str:
        """
        Start a job that hosts one agent.

        Args:
            request: Start payload with project, image and environment overrides.

        Returns:
            The id of the started job.

        Raises:
            BuildServiceError: If the request fails or no id is returned.
        """
        url = urljoin(self.base_url, "jobs/")
        data = self._request("POST", url, json=request.to_dict())
        build = data.get("build", data) if isinstance(data, dict) else {}
        job_id = build.get("id") if isinstance(build, dict) else None
        if not job_id:
            raise BuildServiceError("Build started but no build ID returned")

        logger.info("Started build %s for project %s", job_id, request.project_name)
        return str(job_id)

    def stop(self, job_id: str) -> None:
        """
        Stop a job.

        Raises:
            ValueError: If job_id is empty.
            BuildServiceError: If the service rejects the request for a reason
                other than the job already being stopped.
        """
        if not job_id or not isinstance(job_id, str):
            raise ValueError("job_id must be a non-empty string")

        url = urljoin(self.base_url, f"jobs/{job_id}/stop/")
        try:
            self._request("POST", url, allowed_statuses=(404, 409))
        except BuildServiceError:
            logger.error("Failed to stop build %s", job_id)
            raise
        logger.info("Stop requested for build %s", job_id)

    def get_status(self, job_id: str) -> JobStatus:
        """Fetch the current status of a job."""
        if not job_id or not isinstance(job_id, str):
            raise ValueError("job_id must be a non-empty string")

        url = urljoin(self.base_url, f"jobs/{job_id}/")
        data = self._request("GET", url)
        build = data.get("build", data) if isinstance(data, dict) else {}
        raw_status = (build.get("buildStatus") or build.get("status")) if isinstance(build, dict) else None
        try:
            return JobStatus(str(raw_status).upper())
        except ValueError as exc:
            raise BuildServiceError(f"Unknown status for build {job_id}: {raw_status}") from exc

    def check_status(self, job_id: str, status_filter: Iterable[JobStatus]) -> Optional[JobStatus]:
        status = self.get_status(job_id)
        wanted = set(status_filter)
        if status in wanted:
            logger.info("Build %s is in status %s", job_id, status.value)
            return status
        logger.debug("Build %s is in status %s", job_id, status.value)
        return None

    def _request(
        self,
        method: str,
        url: str,
        *,
        allowed_statuses: Iterable[int] = (),
        **kwargs: Any,
    ) -> Any:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BuildServiceError(f"Request to {url} failed: {exc}") from exc

        if response.status_code in allowed_statuses:
            logger.debug("%s %s returned %s; ignoring", method, url, response.status_code)
            return {}
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise BuildServiceError(self._describe_error(response)) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise BuildServiceError(f"Build service returned malformed JSON for {method} {url}") from exc

    @staticmethod
    def _describe_error(response: requests.Response) -> str:
        """Render an error body such as ``{"__type": "...#ResourceNotFoundException", "message": "..."}``."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            text = (response.text or "").strip() or "no error details"
            return f"Build service returned HTTP {response.status_code}: {text}"

        # __type may carry a namespace prefix: "com.amazonaws.codebuild#InvalidInputException"
        error_type = str(body.get("__type") or body.get("code") or "").rsplit("#", 1)[-1]
        message = body.get("message") or body.get("Message") or "no error details"
        if error_type:
            return f"Build service returned HTTP {response.status_code}: {error_type}: {message}"
        return f"Build service returned HTTP {response.status_code}: {message}"
