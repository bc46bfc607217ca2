"""
Error taxonomy for tfproj.

UserError subclasses carry a remediation hint (the next command to run).
InternalInvariantError marks a broken internal guarantee, i.e. a bug in
tfproj rather than a user mistake.
"""

from typing import Optional, Sequence


class TfProjError(Exception):
    """Base class for all tfproj errors."""


class UserError(TfProjError):
    """A failure the user can fix, surfaced with a remediation hint."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class NoEnvironmentSelectedError(UserError):
    """No environment given and none selected."""

    def __init__(self, hint: str = "tfproj env select  or  tfproj env set <env>"):
        super().__init__("No environment selected.", hint)


class NothingToCheckError(UserError):
    """Check requested without an environment name or a selection."""

    def __init__(self):
        super().__init__(
            "No environment specified and no environment selected.",
            "tfproj env check <env>  or  tfproj env select",
        )


class EnvironmentNotFoundError(UserError):
    """The named environment does not exist in the project."""

    def __init__(self, name: str, choices: Sequence[str] = ()):
        super().__init__(f"Environment '{name}' not found.", "tfproj env list")
        self.name = name
        self.choices = list(choices)


class EnvironmentInvalidError(UserError):
    """The environment exists but lacks a required marker file."""

    def __init__(self, name: str, detail: str):
        super().__init__(
            f"Environment '{name}' is not valid: {detail}",
            f"tfproj env check {name}",
        )
        self.name = name


class EnvironmentSetupError(UserError):
    """Selecting the environment reported one or more failed sub-checks."""

    def __init__(self, name: str, failures: Sequence[str] = ()):
        super().__init__(
            f"Failed to set environment '{name}'.",
            f"tfproj env check {name}",
        )
        self.name = name
        self.failures = list(failures)


class ProjectLayoutError(UserError):
    """Current directory does not look like a Terraform project."""

    def __init__(self, root: str):
        super().__init__(
            f"Directory check(s) failed for: {root}",
            "tfproj check dir",
        )


class ToolNotFoundError(UserError):
    """A required external tool is not callable."""

    def __init__(self, tool: str):
        super().__init__(f"{tool} not found.", "tfproj check tools")
        self.tool = tool


class NotAuthenticatedError(UserError):
    """The account or repository provider has no active login."""

    def __init__(self, provider: str = "Azure CLI", hint: str = "tfproj az login"):
        super().__init__(f"Not logged in with {provider}.", hint)


class SubscriptionSetError(UserError):
    """Setting the active subscription from the hint file failed."""

    def __init__(self, hint_value: str, detail: str = ""):
        message = f"Failed to set subscription using hint '{hint_value}'."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message, "tfproj az set-sub")
        self.hint_value = hint_value


class ExternalToolFailure(TfProjError):
    """An external tool ran but exited non-zero."""

    def __init__(self, tool: str, returncode: int, output: str = ""):
        super().__init__(f"{tool} exited with code {returncode}")
        self.tool = tool
        self.returncode = returncode
        self.output = output


class InternalInvariantError(TfProjError):
    """An internal precondition that an earlier step guarantees was false."""


class VersionParseError(TfProjError, ValueError):
    """Malformed version string."""

    def __init__(self, version: str, reason: str = "invalid version format"):
        super().__init__(f"Cannot parse version '{version}': {reason}")
        self.version = version


class OperationCancelledError(TfProjError):
    """The operation was interrupted between external invocations."""
