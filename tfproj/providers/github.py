"""
GitHub repository provider.

Uses PyGithub for authentication checks, latest-release lookups and raw
file downloads. The token is read from the configured environment variable,
then GH_TOKEN, then ``gh auth token``.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from tfproj.errors import ExternalToolFailure
from tfproj.providers.base import run_command, tool_available

logger = logging.getLogger(__name__)


@dataclass
class GitHubStatus:
    """Status of GitHub authentication."""
    authenticated: bool
    username: Optional[str] = None
    error: Optional[str] = None


class GitHubProvider:
    """RepoProvider backed by the GitHub REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        token_env: str = "GITHUB_TOKEN",
        gh_binary: str = "gh",
        cancel=None,
    ):
        """Initialize the provider.

        Args:
            token: GitHub token (or None to discover one)
            token_env: Environment variable name for token
            gh_binary: gh executable used as a token fallback
            cancel: CancellationToken checked before each API call
        """
        self.token_env = token_env
        self.gh_binary = gh_binary
        self.cancel = cancel
        self._token = token
        self._client = None

    def available(self) -> bool:
        """True if the gh command line tool is installed."""
        return tool_available(self.gh_binary)

    @property
    def token(self) -> Optional[str]:
        if self._token is None:
            self._token = self._discover_token()
        return self._token or None

    def _discover_token(self) -> str:
        for name in (self.token_env, "GH_TOKEN"):
            value = os.environ.get(name)
            if value:
                return value
        if not tool_available(self.gh_binary):
            return ""
        result = run_command(
            [self.gh_binary, "auth", "token"],
            "auth token",
            cancel=self.cancel,
            capture=True,
        )
        return result.stdout.strip() if result.success else ""

    def _github(self):
        if self._client is None:
            from github import Auth, Github

            if self.token:
                self._client = Github(auth=Auth.Token(self.token))
            else:
                self._client = Github()
        return self._client

    def auth_status(self) -> GitHubStatus:
        """Check GitHub authentication.

        Returns:
            GitHubStatus with the authenticated username
        """
        if not self.token:
            return GitHubStatus(
                authenticated=False,
                error=(
                    f"GitHub token not found. Set {self.token_env} or run 'gh auth login'."
                ),
            )

        if self.cancel is not None:
            self.cancel.check()

        from github import GithubException

        try:
            user = self._github().get_user()
            return GitHubStatus(authenticated=True, username=user.login)
        except GithubException as e:
            return GitHubStatus(authenticated=False, error=_describe(e))

    def get_latest_release(self, repo: str) -> str:
        """Return the tag name of the latest release of owner/repo.

        Raises:
            ExternalToolFailure: If the release cannot be fetched
        """
        if self.cancel is not None:
            self.cancel.check()

        from github import GithubException

        try:
            tag = self._github().get_repo(repo).get_latest_release().tag_name
        except GithubException as e:
            raise ExternalToolFailure("github", e.status or 1, _describe(e)) from e
        logger.debug(f"Latest release of {repo}: {tag}")
        return tag

    def get_raw_file(self, repo: str, path: str) -> bytes:
        """Download the raw content of path in owner/repo's default branch.

        Raises:
            ExternalToolFailure: If the file cannot be fetched
        """
        if self.cancel is not None:
            self.cancel.check()

        from github import GithubException

        try:
            contents = self._github().get_repo(repo).get_contents(path)
        except GithubException as e:
            raise ExternalToolFailure("github", e.status or 1, _describe(e)) from e
        if isinstance(contents, list):
            raise ExternalToolFailure("github", 1, f"{repo}/{path} is a directory")
        return contents.decoded_content


def _describe(exc) -> str:
    data = getattr(exc, "data", None)
    if isinstance(data, dict) and data.get("message"):
        return f"{data['message']} (HTTP {exc.status})"
    return str(exc)
