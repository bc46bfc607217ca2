"""
Shared fixtures: a small Terraform project on disk and in-memory providers.
"""

import logging
from pathlib import Path

import pytest

from tfproj.cli.common import Services
from tfproj.config.schema import TfProjConfig
from tfproj.core.binding import AccountBinder
from tfproj.core.init import InitOrchestrator
from tfproj.core.preflight import Preflight
from tfproj.errors import ExternalToolFailure
from tfproj.log import LOGGER_NAME
from tfproj.providers.base import CommandResult
from tfproj.providers.github import GitHubStatus
from tfproj.session.state import AccountIdentity, SessionContext

SUBSCRIPTIONS = {
    "sub-dev": "00000000-0000-0000-0000-000000000001",
    "sub-prod": "00000000-0000-0000-0000-000000000002",
    "sub-test": "00000000-0000-0000-0000-000000000003",
}

MAIN_TF = '''module "naming" {
  source  = "Azure/naming/azurerm"
  version = "0.3.0"
}

module "network" {
  source = "../modules/network"
}
'''

LOCK_FILE = '''provider "registry.terraform.io/hashicorp/azurerm" {
  version     = "3.100.0"
  constraints = "~> 3.0"
  hashes = [
    "h1:abc=",
  ]
}
'''

TFLINT_HCL = '''plugin "azurerm" {
  enabled = true
  version = "0.25.0"
  source  = "github.com/terraform-linters/tflint-ruleset-azurerm"
}

plugin "terraform" {
  enabled = true
  preset  = "recommended"
}
'''


def make_project(root: Path, envs=("dev", "prod", "test")) -> Path:
    """Create main/, modules/ and envs/ with valid environments."""
    (root / "main").mkdir(parents=True)
    (root / "main" / "main.tf").write_text(MAIN_TF)
    for module in ("network", "storage"):
        (root / "modules" / module).mkdir(parents=True)
        (root / "modules" / module / "main.tf").write_text("")
    for name in envs:
        env_dir = root / "envs" / name
        env_dir.mkdir(parents=True)
        (env_dir / ".terraform.lock.hcl").write_text(LOCK_FILE)
        (env_dir / ".az-subscription").write_text(f"sub-{name}\n")
        (env_dir / ".tflint.hcl").write_text(TFLINT_HCL)
    (root / "envs" / "_template").mkdir()
    return root


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by commands so later tests don't write to closed streams."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def project(tmp_path):
    return make_project(tmp_path / "project")


@pytest.fixture
def config(tmp_path):
    return TfProjConfig(session={"state_dir": str(tmp_path / "state")})


@pytest.fixture
def session(project, config):
    return SessionContext(root_dir=project, config=config)


class FakeAccountProvider:
    """AccountProvider that records every call."""

    def __init__(self, logged_in=True, available=True, subscriptions=None):
        self.logged_in = logged_in
        self._available = available
        self.subscriptions = dict(subscriptions or SUBSCRIPTIONS)
        self.active = next(iter(self.subscriptions))
        self.calls = []

    def available(self):
        self.calls.append("available")
        return self._available

    def whoami(self):
        self.calls.append("whoami")
        if not self.logged_in:
            return None
        return AccountIdentity(
            user="dev@example.com",
            subscription_id=self.subscriptions[self.active],
            subscription_name=self.active,
            tenant_name="Example",
        )

    def set_subscription(self, hint):
        self.calls.append(f"set_subscription:{hint}")
        for name, sub_id in self.subscriptions.items():
            if hint.lower() in (name.lower(), sub_id):
                self.active = name
                return True
        return False

    def login(self):
        self.calls.append("login")
        self.logged_in = True
        return True

    def logout(self):
        self.calls.append("logout")
        self.logged_in = False
        return True


class FakeTerraform:
    """TerraformRunner stand-in; init creates the provider cache directory."""

    def __init__(self, available=True, failing=()):
        self._available = available
        self.failing = set(failing)
        self.calls = []

    def available(self):
        return self._available

    def _result(self, operation, directory):
        ok = Path(directory).name not in self.failing
        return CommandResult(exit_code=0 if ok else 1, stdout="", stderr="", success=ok, command=operation)

    def init(self, directory, upgrade=False, env=None):
        self.calls.append(("init", Path(directory), upgrade, dict(env or {})))
        result = self._result("init", directory)
        if result.success:
            (Path(directory) / ".terraform" / "providers").mkdir(parents=True, exist_ok=True)
        return result

    def init_offline(self, directory, plugin_dir, env=None):
        self.calls.append(("init_offline", Path(directory), Path(plugin_dir), dict(env or {})))
        return self._result("init", directory)

    def validate(self, directory, env=None):
        self.calls.append(("validate", Path(directory), dict(env or {})))
        return self._result("validate", directory)

    def plan(self, directory, env=None):
        self.calls.append(("plan", Path(directory), dict(env or {})))
        return self._result("plan", directory)

    def apply(self, directory, env=None):
        self.calls.append(("apply", Path(directory), dict(env or {})))
        return self._result("apply", directory)

    def fmt(self, root_dir, check=True):
        self.calls.append(("fmt", Path(root_dir), check))
        return self._result("fmt", root_dir)

    def destroy_command(self, directory):
        return f"terraform -chdir='{directory}' destroy"


class FakeRepoProvider:
    """RepoProvider with canned releases and files."""

    def __init__(self, authenticated=True, releases=None, files=None):
        self.authenticated = authenticated
        self.releases = dict(releases or {})
        self.files = dict(files or {})
        self.calls = []

    def available(self):
        return True

    def auth_status(self):
        self.calls.append("auth_status")
        if self.authenticated:
            return GitHubStatus(authenticated=True, username="octocat")
        return GitHubStatus(authenticated=False, error="not logged in")

    def get_latest_release(self, repo):
        self.calls.append(f"release:{repo}")
        if repo not in self.releases:
            raise ExternalToolFailure("github", 404, f"{repo}: Not Found")
        return self.releases[repo]

    def get_raw_file(self, repo, path):
        self.calls.append(f"file:{repo}/{path}")
        return self.files[(repo, path)]


class FakeRegistry:
    """Registry client answering from dictionaries keyed by address."""

    def __init__(self, modules=None, providers=None):
        self.modules = dict(modules or {})
        self.providers = dict(providers or {})
        self.calls = []

    def latest_module_version(self, address):
        self.calls.append(str(address))
        if str(address) not in self.modules:
            raise ExternalToolFailure("registry", 404, f"{address} not found")
        return self.modules[str(address)]

    def latest_provider_version(self, address):
        self.calls.append(str(address))
        if str(address) not in self.providers:
            raise ExternalToolFailure("registry", 404, f"{address} not found")
        return self.providers[str(address)]


def make_services(terraform=None, azure=None, github=None, registry=None) -> Services:
    terraform = terraform or FakeTerraform()
    azure = azure or FakeAccountProvider()
    binder = AccountBinder(azure)
    preflight = Preflight(terraform, binder)
    return Services(
        terraform=terraform,
        azure=azure,
        github=github or FakeRepoProvider(),
        registry=registry or FakeRegistry(),
        binder=binder,
        preflight=preflight,
        orchestrator=InitOrchestrator(terraform, preflight),
    )


@pytest.fixture
def azure():
    return FakeAccountProvider()


@pytest.fixture
def terraform():
    return FakeTerraform()


@pytest.fixture
def binder(azure):
    return AccountBinder(azure)
