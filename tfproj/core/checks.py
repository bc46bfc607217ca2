"""
Diagnostic checks: tools, project directory, GitHub auth, prerequisites
and the overall status report.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from tfproj.project.environment import EnvironmentCheck, validate_environment
from tfproj.project.topology import ProjectTopology, scan
from tfproj.providers.base import AccountProvider, RepoProvider, tool_available
from tfproj.providers.github import GitHubStatus
from tfproj.session.state import AccountIdentity, SessionContext

logger = logging.getLogger(__name__)

INSTALL_HINTS = {
    "az": "https://learn.microsoft.com/en-us/cli/azure/install-azure-cli",
    "gh": "https://github.com/cli/cli#installation",
    "terraform": "https://developer.hashicorp.com/terraform/install",
}


@dataclass
class ToolStatus:
    """Availability of one external tool."""
    name: str
    executable: str
    available: bool
    install_hint: Optional[str] = None


@dataclass
class DirectoryCheck:
    root_dir: str
    main_ok: bool
    envs_ok: bool

    @property
    def failure_count(self) -> int:
        return int(not self.main_ok) + int(not self.envs_ok)


@dataclass
class PrereqsReport:
    tools: list[ToolStatus]
    github: GitHubStatus
    directory: DirectoryCheck

    @property
    def tools_ok(self) -> bool:
        return all(t.available for t in self.tools)

    @property
    def failure_count(self) -> int:
        return int(not self.tools_ok) + int(not self.github.authenticated) + self.directory.failure_count


@dataclass
class StatusReport:
    prereqs: PrereqsReport
    topology: ProjectTopology
    azure_available: bool
    identity: Optional[AccountIdentity] = None
    selected_name: Optional[str] = None
    environment: Optional[EnvironmentCheck] = None
    notes: list[str] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        count = self.prereqs.failure_count
        count += int(not self.prereqs.github.authenticated)
        count += int(self.identity is None)
        if self.selected_name:
            env = self.environment
            if env is None or not env.found:
                count += 1
            else:
                count += int(not env.lock_ok) + int(not env.hint_ok)
        return count


def check_tools(session: SessionContext) -> list[ToolStatus]:
    """Check az, gh and terraform availability."""
    tools = session.config.tools
    statuses = []
    for name, executable in (("az", tools.az), ("gh", tools.gh), ("terraform", tools.terraform)):
        available = tool_available(executable)
        logger.debug(f"{name} ({executable}) available: {available}")
        statuses.append(ToolStatus(
            name=name,
            executable=executable,
            available=available,
            install_hint=None if available else INSTALL_HINTS[name],
        ))
    return statuses


def check_directory(session: SessionContext) -> DirectoryCheck:
    """Check that the working directory is a project root."""
    topology = scan(session)
    return DirectoryCheck(
        root_dir=str(topology.root_dir),
        main_ok=topology.has_main,
        envs_ok=topology.has_envs,
    )


def check_github_auth(session: SessionContext, repo_provider: RepoProvider) -> GitHubStatus:
    """Fails when gh is missing or the provider reports no login."""
    if not tool_available(session.config.tools.gh):
        return GitHubStatus(authenticated=False, error="GitHub CLI not available")
    return repo_provider.auth_status()


def check_prereqs(session: SessionContext, repo_provider: RepoProvider) -> PrereqsReport:
    return PrereqsReport(
        tools=check_tools(session),
        github=check_github_auth(session, repo_provider),
        directory=check_directory(session),
    )


def build_status(
    session: SessionContext,
    repo_provider: RepoProvider,
    account_provider: AccountProvider,
) -> StatusReport:
    """Collect everything the status dashboard shows.

    Refreshes the cached account identity when the az CLI is available.
    """
    prereqs = check_prereqs(session, repo_provider)
    topology = scan(session)

    azure_available = account_provider.available()
    identity = None
    if azure_available:
        identity = account_provider.whoami()
        session.identity = identity

    report = StatusReport(
        prereqs=prereqs,
        topology=topology,
        azure_available=azure_available,
        identity=identity,
    )

    if session.selected is not None:
        report.selected_name = session.selected.name
        report.environment = validate_environment(
            session.selected.name, topology, session.config.layout
        )
        hint = report.environment.hint
        if identity is not None and hint and not identity.matches(hint):
            report.notes.append(
                f"active subscription '{identity.subscription_name}' does not match "
                f"hint '{hint}', run 'tfproj az set-sub'"
            )
    return report
