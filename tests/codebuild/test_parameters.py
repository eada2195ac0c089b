import pytest

from buildcloud.codebuild.config import CloudConfig
from buildcloud.codebuild.parameters import (
    agent_download_url,
    build_parameters,
    select_connection_mode,
)
from buildcloud.codebuild.types import ConnectionMode
from buildcloud.codebuild.workers import BuildWorker, EphemeralNode


ALWAYS = ["JENKINS_SECRET", "JENKINS_AGENT_NAME", "JENKINS_CODEBUILD_AGENT_URL"]


def make_config(**overrides):
    values = {
        "project_name": "agents",
        "docker_image": "jenkins/inbound-agent:latest",
        "url": "https://ci.example.com:8443/jenkins/",
    }
    values.update(overrides)
    return CloudConfig(**values)


@pytest.fixture
def worker():
    return BuildWorker("codebuild-abc", "s3cr3t", node=EphemeralNode("codebuild-abc", display_name="CodeBuild abc"))


def names(params):
    return [p.name for p in params]


def as_dict(params):
    return {p.name: p.value for p in params}


class TestSelectConnectionMode:
    """Test cases for connection mode priority."""

    def test_direct_wins_over_websocket(self):
        config = make_config(direct="ci.example.com:50000", web_socket=True)
        assert select_connection_mode(config) is ConnectionMode.DIRECT

    def test_websocket_when_no_direct(self):
        assert select_connection_mode(make_config(web_socket=True)) is ConnectionMode.WEB_SOCKET

    def test_fallback_by_default(self):
        assert select_connection_mode(make_config(tunnel="tunnel:50000")) is ConnectionMode.TUNNEL_OR_DEFAULT


class TestDirectMode:
    """Test cases for the direct connection parameter set."""

    def test_minimal_direct(self, worker):
        config = make_config(direct="ci.example.com:50000", controller_identity="MIIBIjAN")
        params = build_parameters(config, worker)

        assert names(params) == [
            "JENKINS_DIRECT_CONNECTION",
            "JENKINS_INSTANCE_IDENTITY",
            *ALWAYS,
        ]
        values = as_dict(params)
        assert values["JENKINS_DIRECT_CONNECTION"] == "ci.example.com:50000"
        assert values["JENKINS_INSTANCE_IDENTITY"] == "MIIBIjAN"

    def test_direct_with_all_options(self, worker):
        config = make_config(
            direct="ci.example.com:50000",
            controller_identity="MIIBIjAN",
            protocols="JNLP4-connect",
            proxy_credentials="user:pass",
            no_keep_alive=True,
            disable_https_cert_validation=True,
            no_reconnect=True,
            tunnel="ignored:50000",
            web_socket=True,
        )
        params = build_parameters(config, worker)

        assert names(params) == [
            "JENKINS_DIRECT_CONNECTION",
            "JENKINS_INSTANCE_IDENTITY",
            "JENKINS_PROTOCOLS",
            "JENKINS_CODEBUILD_PROXY_CREDENTIALS",
            "JENKINS_CODEBUILD_NOKEEPALIVE",
            "JENKINS_CODEBUILD_DISABLE_SSL_VALIDATION",
            "JENKINS_CODEBUILD_NORECONNECT",
            *ALWAYS,
        ]
        values = as_dict(params)
        assert values["JENKINS_CODEBUILD_PROXY_CREDENTIALS"] == "-proxyCredentials user:pass"
        assert values["JENKINS_CODEBUILD_NOKEEPALIVE"] == "-noKeepAlive"
        assert values["JENKINS_CODEBUILD_DISABLE_SSL_VALIDATION"] == "-disableHttpsCertValidation"
        assert values["JENKINS_CODEBUILD_NORECONNECT"] == "-noreconnect"

    def test_direct_never_emits_url_or_tunnel(self, worker):
        config = make_config(direct="ci.example.com:50000", tunnel="tunnel:50000")
        emitted = names(build_parameters(config, worker))
        assert "JENKINS_URL" not in emitted
        assert "JENKINS_TUNNEL" not in emitted
        assert "JENKINS_WEB_SOCKET" not in emitted


class TestWebSocketMode:
    """Test cases for the websocket parameter set."""

    def test_exact_websocket_set(self, worker):
        config = make_config(
            web_socket=True,
            tunnel="tunnel:50000",
            proxy_credentials="user:pass",
            no_keep_alive=True,
            protocols="JNLP4-connect",
        )
        params = build_parameters(config, worker)

        assert names(params) == ["JENKINS_WEB_SOCKET", "JENKINS_URL", *ALWAYS]
        values = as_dict(params)
        assert values["JENKINS_WEB_SOCKET"] == "true"
        assert values["JENKINS_URL"] == "https://ci.example.com:8443/jenkins/"

    def test_websocket_keeps_no_reconnect(self, worker):
        params = build_parameters(make_config(web_socket=True, no_reconnect=True), worker)
        assert names(params) == ["JENKINS_WEB_SOCKET", "JENKINS_URL", "JENKINS_CODEBUILD_NORECONNECT", *ALWAYS]


class TestFallbackMode:
    """Test cases for the tunnel/default parameter set."""

    def test_url_only(self, worker):
        params = build_parameters(make_config(), worker)
        assert names(params) == ["JENKINS_URL", *ALWAYS]

    def test_tunnel_before_url(self, worker):
        params = build_parameters(make_config(tunnel="tunnel.example.com:50000"), worker)
        assert names(params)[:2] == ["JENKINS_TUNNEL", "JENKINS_URL"]
        assert as_dict(params)["JENKINS_TUNNEL"] == "tunnel.example.com:50000"

    def test_transport_options_follow_url(self, worker):
        config = make_config(proxy_credentials="user:pass", disable_https_cert_validation=True)
        params = build_parameters(config, worker)
        assert names(params) == [
            "JENKINS_URL",
            "JENKINS_CODEBUILD_PROXY_CREDENTIALS",
            "JENKINS_CODEBUILD_DISABLE_SSL_VALIDATION",
            *ALWAYS,
        ]

    def test_protocols_ignored_outside_direct(self, worker):
        params = build_parameters(make_config(protocols="JNLP4-connect"), worker)
        assert "JENKINS_PROTOCOLS" not in names(params)


class TestAlwaysPresent:
    """Test cases for parameters emitted in every mode."""

    def test_worker_identity(self, worker):
        values = as_dict(build_parameters(make_config(), worker))
        assert values["JENKINS_SECRET"] == "s3cr3t"
        assert values["JENKINS_AGENT_NAME"] == "CodeBuild abc"
        assert values["JENKINS_CODEBUILD_AGENT_URL"] == "https://ci.example.com:8443/jnlpJars/agent.jar"

    def test_agent_name_falls_back_to_worker_name(self):
        worker = BuildWorker("codebuild-xyz", "s3cr3t")
        values = as_dict(build_parameters(make_config(), worker))
        assert values["JENKINS_AGENT_NAME"] == "codebuild-xyz"

    def test_names_are_unique(self, worker):
        config = make_config(
            tunnel="tunnel:50000",
            proxy_credentials="user:pass",
            no_keep_alive=True,
            disable_https_cert_validation=True,
            no_reconnect=True,
        )
        emitted = names(build_parameters(config, worker))
        assert len(emitted) == len(set(emitted))

    def test_build_is_deterministic(self, worker):
        config = make_config(direct="ci.example.com:50000", protocols="JNLP4-connect", no_reconnect=True)
        assert build_parameters(config, worker) == build_parameters(config, worker)

    def test_plaintext_type(self, worker):
        assert all(p.type == "PLAINTEXT" for p in build_parameters(make_config(), worker))


class TestAgentDownloadUrl:
    """Test cases for the agent.jar URL derived from the controller URL."""

    def test_keeps_user_info_and_port(self):
        assert agent_download_url("http://bot@ci.local:8080/a/b?x=1") == "http://bot@ci.local:8080/jnlpJars/agent.jar"

    def test_drops_path(self):
        assert agent_download_url("https://ci.example.com/jenkins") == "https://ci.example.com/jnlpJars/agent.jar"

    @pytest.mark.parametrize("url", ["", "not a url", "ci.example.com/jenkins", "http://[::1", "http://host:port/"])
    def test_malformed_url(self, url):
        assert agent_download_url(url) == "ERROR"

    def test_malformed_url_does_not_break_build(self, worker):
        values = as_dict(build_parameters(make_config(url="::::"), worker))
        assert values["JENKINS_CODEBUILD_AGENT_URL"] == "ERROR"
        assert values["JENKINS_URL"] == "::::"
