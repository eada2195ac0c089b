import io

import pytest

from buildcloud.codebuild.workers import BuildWorker, EphemeralNode, LaunchListener, Node


class TestBuildWorker:
    """Test cases for BuildWorker state."""

    def test_job_id_roundtrip(self):
        worker = BuildWorker("codebuild-1", "s3cr3t")
        assert worker.job_id is None

        worker.set_job_id("agents:1")
        assert worker.job_id == "agents:1"

        worker.set_job_id(None)
        assert worker.job_id is None

    def test_empty_job_id_clears(self):
        worker = BuildWorker("codebuild-1", "s3cr3t")
        worker.set_job_id("agents:1")
        worker.set_job_id("")
        assert worker.job_id is None

    def test_connection_state(self):
        worker = BuildWorker("codebuild-1", "s3cr3t")
        assert worker.is_online() is False

        worker.mark_connected()
        assert worker.is_online() and worker.is_accepting_tasks()

        worker.set_accepting_tasks(False)
        assert worker.is_accepting_tasks() is False

        worker.mark_disconnected()
        assert worker.is_online() is False

    @pytest.mark.parametrize("name,secret", [("", "s3cr3t"), ("codebuild-1", "")])
    def test_requires_name_and_secret(self, name, secret):
        with pytest.raises(ValueError):
            BuildWorker(name, secret)


class TestNodes:
    """Test cases for node definitions."""

    def test_display_name_defaults_to_name(self):
        assert Node("static-1").display_name == "static-1"
        assert EphemeralNode("codebuild-1", display_name="CodeBuild 1").display_name == "CodeBuild 1"

    def test_ephemeral_node_is_a_node(self):
        assert isinstance(EphemeralNode("codebuild-1"), Node)


class TestLaunchListener:
    """Test cases for the launch output sink."""

    def test_fatal_error_is_written_and_recorded(self):
        stream = io.StringIO()
        listener = LaunchListener(stream)

        listener.fatal_error("Exception while starting build: boom")

        assert stream.getvalue() == "FATAL: Exception while starting build: boom\n"
        assert listener.messages == ["FATAL: Exception while starting build: boom"]
