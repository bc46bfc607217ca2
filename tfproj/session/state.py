"""
Session state threaded through every tfproj operation.

A SessionContext is built when a command starts (from the session store),
passed explicitly to the operations that need it, and saved when the
command exits.
"""

import signal
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from tfproj.config.schema import TfProjConfig
from tfproj.errors import InternalInvariantError, OperationCancelledError


@dataclass
class AccountIdentity:
    """Identity reported by the account provider."""
    user: str
    subscription_id: str
    subscription_name: str
    tenant_name: Optional[str] = None

    def __post_init__(self):
        fields = (self.user, self.subscription_id, self.subscription_name)
        if any(fields) and not all(fields):
            raise InternalInvariantError(
                "partial account identity: user, subscription id and "
                "subscription name must be set together"
            )
        if not any(fields):
            raise InternalInvariantError("empty account identity")

    def matches(self, hint: str) -> bool:
        """True if the bound subscription name equals the hint, ignoring case."""
        return self.subscription_name.lower() == hint.strip().lower()

    def to_dict(self) -> dict:
        return {
            "user": self.user,
            "subscription_id": self.subscription_id,
            "subscription_name": self.subscription_name,
            "tenant_name": self.tenant_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AccountIdentity":
        return cls(
            user=data.get("user", ""),
            subscription_id=data.get("subscription_id", ""),
            subscription_name=data.get("subscription_name", ""),
            tenant_name=data.get("tenant_name"),
        )


@dataclass
class SelectedEnvironment:
    """The environment all environment-scoped commands act on."""
    name: str
    directory: Path
    lock_file: Optional[Path] = None
    hint_file: Optional[Path] = None
    hint: Optional[str] = None


@dataclass
class Verbosity:
    """Console verbosity flags honoured by the log filter."""
    log_info: bool = True
    log_warnings: bool = True
    log_errors: bool = True
    debug: bool = False

    @contextmanager
    def override(self, **flags) -> Iterator["Verbosity"]:
        """Temporarily change flags, restoring the previous values on exit."""
        snapshot = (self.log_info, self.log_warnings, self.log_errors, self.debug)
        for name, value in flags.items():
            if not hasattr(self, name):
                raise AttributeError(f"unknown verbosity flag: {name}")
            setattr(self, name, value)
        try:
            yield self
        finally:
            self.log_info, self.log_warnings, self.log_errors, self.debug = snapshot


class CancellationToken:
    """Set by SIGINT, checked before every external invocation."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def check(self) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._cancelled:
            raise OperationCancelledError("Operation aborted by user")

    @contextmanager
    def handle_sigint(self) -> Iterator["CancellationToken"]:
        """Install a SIGINT handler that cancels this token."""
        def _handler(signum, frame):
            self.cancel()

        try:
            previous = signal.signal(signal.SIGINT, _handler)
        except ValueError:
            # Not in the main thread
            yield self
            return
        try:
            yield self
        finally:
            signal.signal(signal.SIGINT, previous)

    @contextmanager
    def interactive(self) -> Iterator["CancellationToken"]:
        """Let SIGINT raise KeyboardInterrupt while waiting on a prompt.

        The token is cancelled as well, so the command still ends as aborted
        if the prompt swallows the interrupt.
        """
        def _handler(signum, frame):
            self.cancel()
            raise KeyboardInterrupt

        try:
            previous = signal.signal(signal.SIGINT, _handler)
        except ValueError:
            yield self
            return
        try:
            yield self
        finally:
            signal.signal(signal.SIGINT, previous)


@dataclass
class SessionContext:
    """Mutable per-command session state."""
    root_dir: Path
    config: TfProjConfig = field(default_factory=TfProjConfig)
    selected: Optional[SelectedEnvironment] = None
    identity: Optional[AccountIdentity] = None
    verbosity: Verbosity = field(default_factory=Verbosity)
    cancel: CancellationToken = field(default_factory=CancellationToken)

    def clear_selection(self) -> None:
        self.selected = None

    def clear_identity(self) -> None:
        self.identity = None
