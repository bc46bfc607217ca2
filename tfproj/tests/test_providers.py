"""
Tests for the external tool and API providers.
"""

import json
import os
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from tfproj.errors import (
    ExternalToolFailure,
    InternalInvariantError,
    OperationCancelledError,
    ToolNotFoundError,
)
from tfproj.providers.azure import AzureCliProvider
from tfproj.providers.base import run_command
from tfproj.providers.github import GitHubProvider
from tfproj.providers.registry import (
    ModuleAddress,
    ProviderAddress,
    RegistryClient,
    parse_module_source,
    parse_provider_address,
)
from tfproj.session.state import CancellationToken

ACCOUNT = {
    "id": "00000000-0000-0000-0000-000000000001",
    "name": "sub-dev",
    "tenantDisplayName": "Example",
    "user": {"name": "dev@example.com", "type": "user"},
}


class TestRunCommand:
    """Tests for run_command."""

    def test_env_merged_for_single_call(self):
        """Test extra variables are merged into a copy of the environment."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
            run_command(["terraform", "plan"], "plan", env={"ARM_SUBSCRIPTION_ID": "abc"})

        env = mock_run.call_args.kwargs["env"]
        assert env["ARM_SUBSCRIPTION_ID"] == "abc"
        assert "ARM_SUBSCRIPTION_ID" not in os.environ or os.environ["ARM_SUBSCRIPTION_ID"] != "abc"

    def test_no_env_inherits(self):
        """Test no env means the process environment is inherited."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=3, stdout=None, stderr=None)
            result = run_command(["terraform"], "version")
        assert mock_run.call_args.kwargs["env"] is None
        assert not result.success
        assert result.exit_code == 3

    def test_missing_executable(self):
        """Test FileNotFoundError becomes ToolNotFoundError."""
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(ToolNotFoundError):
                run_command(["nope"], "run")

    def test_cancelled_before_start(self):
        """Test a cancelled token stops the call before the process starts."""
        token = CancellationToken()
        token.cancel()
        with patch("subprocess.run") as mock_run:
            with pytest.raises(OperationCancelledError):
                run_command(["terraform"], "init", cancel=token)
        mock_run.assert_not_called()


class TestAzureCliProvider:
    """Tests for AzureCliProvider."""

    def test_whoami(self):
        """Test az account show output is parsed."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout=json.dumps(ACCOUNT), stderr="")
            identity = AzureCliProvider().whoami()

        assert identity.user == "dev@example.com"
        assert identity.subscription_id == ACCOUNT["id"]
        assert identity.subscription_name == "sub-dev"
        assert identity.tenant_name == "Example"

    def test_whoami_not_logged_in(self):
        """Test a failing az account show means not logged in."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=1, stdout="", stderr="Please run 'az login'")
            assert AzureCliProvider().whoami() is None

    def test_whoami_garbage(self):
        """Test unparsable output is an internal error."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="not json", stderr="")
            with pytest.raises(InternalInvariantError):
                AzureCliProvider().whoami()

    def test_set_subscription(self):
        """Test the hint is passed to az account set."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
            assert AzureCliProvider().set_subscription("sub-dev")
        assert mock_run.call_args.args[0] == ["az", "account", "set", "--subscription", "sub-dev"]

    def test_login_clears_first(self):
        """Test login clears cached accounts and uses a device code."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
            assert AzureCliProvider().login()
        commands = [call.args[0] for call in mock_run.call_args_list]
        assert commands == [
            ["az", "account", "clear"],
            ["az", "login", "--use-device-code", "--output", "none"],
        ]


class TestRegistryAddresses:
    """Tests for registry address parsing."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("Azure/naming/azurerm", "Azure/naming/azurerm"),
            ("registry.terraform.io/Azure/naming/azurerm", "Azure/naming/azurerm"),
            ("Azure/avm-ptn-alz/azurerm//modules/foo", "Azure/avm-ptn-alz/azurerm"),
        ],
    )
    def test_registry_sources(self, source, expected):
        """Test registry sources are recognised."""
        assert str(parse_module_source(source)) == expected

    @pytest.mark.parametrize(
        "source",
        [
            "../modules/network",
            "./local",
            "git::https://example.com/repo.git",
            "https://example.com/module.zip",
            "github.com/org/repo",
        ],
    )
    def test_non_registry_sources(self, source):
        """Test local, git and URL sources are skipped."""
        assert parse_module_source(source) is None

    def test_provider_address(self):
        """Test lock-file provider addresses are parsed."""
        address = parse_provider_address("registry.terraform.io/hashicorp/azurerm")
        assert address == ProviderAddress(namespace="hashicorp", type="azurerm", host="registry.terraform.io")


class TestRegistryClient:
    """Tests for RegistryClient."""

    def _client(self, status=200, payload=None, error=None):
        session = MagicMock()
        if error is not None:
            session.get.side_effect = error
        else:
            response = Mock(status_code=status, text="body")
            response.json.return_value = payload or {}
            session.get.return_value = response
        return RegistryClient("https://registry.example.com/", timeout=5, session=session), session

    def test_latest_module_version(self):
        """Test the module endpoint and version field."""
        client, session = self._client(payload={"version": "0.4.2"})
        assert client.latest_module_version(ModuleAddress("Azure", "naming", "azurerm")) == "0.4.2"
        url = session.get.call_args.args[0]
        assert url == "https://registry.example.com/v1/modules/Azure/naming/azurerm"
        assert session.get.call_args.kwargs["timeout"] == 5

    def test_latest_provider_version(self):
        """Test the provider endpoint."""
        client, session = self._client(payload={"version": "4.1.0"})
        assert client.latest_provider_version(ProviderAddress("hashicorp", "azurerm")) == "4.1.0"
        assert session.get.call_args.args[0].endswith("/v1/providers/hashicorp/azurerm")

    def test_http_error(self):
        """Test HTTP errors raise ExternalToolFailure."""
        client, _ = self._client(status=404)
        with pytest.raises(ExternalToolFailure) as exc:
            client.latest_provider_version(ProviderAddress("hashicorp", "nope"))
        assert exc.value.returncode == 404

    def test_connection_error(self):
        """Test connection errors raise ExternalToolFailure."""
        client, _ = self._client(error=requests.ConnectionError("down"))
        with pytest.raises(ExternalToolFailure):
            client.latest_module_version(ModuleAddress("a", "b", "c"))

    def test_missing_version(self):
        """Test a response without a version is a failure."""
        client, _ = self._client(payload={"id": "x"})
        with pytest.raises(ExternalToolFailure):
            client.latest_module_version(ModuleAddress("a", "b", "c"))


class TestGitHubProvider:
    """Tests for GitHubProvider."""

    def test_token_from_env(self):
        """Test the configured token variable is used first."""
        with patch.dict(os.environ, {"MY_TOKEN": "abc"}, clear=False):
            assert GitHubProvider(token_env="MY_TOKEN").token == "abc"

    def test_token_from_gh(self):
        """Test gh auth token is the fallback."""
        with patch.dict(os.environ, {}, clear=True), \
                patch("tfproj.providers.github.tool_available", return_value=True), \
                patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(returncode=0, stdout="gho_token\n", stderr="")
            assert GitHubProvider().token == "gho_token"

    def test_auth_status_without_token(self):
        """Test a missing token is reported as not authenticated."""
        with patch.dict(os.environ, {}, clear=True), \
                patch("tfproj.providers.github.tool_available", return_value=False):
            status = GitHubProvider().auth_status()
        assert not status.authenticated
        assert "GITHUB_TOKEN" in status.error

    def test_auth_status(self):
        """Test the authenticated user is reported."""
        with patch("github.Github") as mock_github:
            mock_github.return_value.get_user.return_value.login = "octocat"
            status = GitHubProvider(token="abc").auth_status()
        assert status.authenticated
        assert status.username == "octocat"

    def test_latest_release(self):
        """Test the latest release tag is returned."""
        with patch("github.Github") as mock_github:
            repo = mock_github.return_value.get_repo.return_value
            repo.get_latest_release.return_value.tag_name = "v1.9.5"
            assert GitHubProvider(token="abc").get_latest_release("hashicorp/terraform") == "v1.9.5"
        mock_github.return_value.get_repo.assert_called_with("hashicorp/terraform")

    def test_latest_release_error(self):
        """Test API errors raise ExternalToolFailure."""
        from github import GithubException

        with patch("github.Github") as mock_github:
            mock_github.return_value.get_repo.side_effect = GithubException(404, {"message": "Not Found"}, None)
            with pytest.raises(ExternalToolFailure) as exc:
                GitHubProvider(token="abc").get_latest_release("nobody/nothing")
        assert exc.value.returncode == 404
        assert "Not Found" in exc.value.output

    def test_raw_file(self):
        """Test raw file content is returned as bytes."""
        with patch("github.Github") as mock_github:
            contents = mock_github.return_value.get_repo.return_value.get_contents.return_value
            contents.decoded_content = b"#!/bin/bash\n"
            assert GitHubProvider(token="abc").get_raw_file("org/repo", "tflint.sh") == b"#!/bin/bash\n"
