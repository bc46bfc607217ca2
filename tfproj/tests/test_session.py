"""
Tests for session state and persistence.
"""

import signal

import pytest
import yaml

from tfproj.errors import InternalInvariantError, OperationCancelledError
from tfproj.session.state import (
    AccountIdentity,
    CancellationToken,
    SelectedEnvironment,
    SessionContext,
    Verbosity,
)
from tfproj.session.store import load_session, save_session, state_file_for


class TestAccountIdentity:
    """Tests for AccountIdentity."""

    def test_partial_identity_rejected(self):
        """Test that user, id and name must be set together."""
        with pytest.raises(InternalInvariantError):
            AccountIdentity(user="me", subscription_id="", subscription_name="sub")

    def test_empty_identity_rejected(self):
        """Test an all-empty identity is rejected."""
        with pytest.raises(InternalInvariantError):
            AccountIdentity(user="", subscription_id="", subscription_name="")

    def test_matches_ignores_case(self):
        """Test hint comparison ignores case and surrounding whitespace."""
        identity = AccountIdentity(user="me", subscription_id="1", subscription_name="Sub-Dev")
        assert identity.matches(" sub-dev ")
        assert not identity.matches("sub-prod")

    def test_dict_round_trip(self):
        """Test to_dict and from_dict agree."""
        identity = AccountIdentity(user="me", subscription_id="1", subscription_name="s", tenant_name="t")
        assert AccountIdentity.from_dict(identity.to_dict()) == identity


class TestVerbosity:
    """Tests for Verbosity.override."""

    def test_restores_on_exit(self):
        """Test flags are restored after the block."""
        verbosity = Verbosity()
        with verbosity.override(log_info=False, debug=True):
            assert not verbosity.log_info
            assert verbosity.debug
        assert verbosity.log_info
        assert not verbosity.debug

    def test_restores_on_error(self):
        """Test flags are restored when the block raises."""
        verbosity = Verbosity()
        with pytest.raises(RuntimeError):
            with verbosity.override(log_errors=False):
                raise RuntimeError("boom")
        assert verbosity.log_errors

    def test_unknown_flag(self):
        """Test unknown flags are rejected."""
        with pytest.raises(AttributeError):
            with Verbosity().override(colour=False):
                pass


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_check_raises_after_cancel(self):
        """Test check() raises only once cancelled."""
        token = CancellationToken()
        token.check()
        token.cancel()
        assert token.cancelled
        with pytest.raises(OperationCancelledError):
            token.check()

    def test_sigint_cancels_token(self):
        """Test SIGINT inside handle_sigint cancels instead of interrupting."""
        token = CancellationToken()
        with token.handle_sigint():
            signal.raise_signal(signal.SIGINT)
            assert token.cancelled
        with pytest.raises(OperationCancelledError):
            token.check()

    def test_sigint_at_prompt_interrupts(self):
        """Test SIGINT while waiting for input raises KeyboardInterrupt and cancels."""
        token = CancellationToken()
        with token.handle_sigint():
            with pytest.raises(KeyboardInterrupt):
                with token.interactive():
                    signal.raise_signal(signal.SIGINT)
            signal.raise_signal(signal.SIGINT)
        assert token.cancelled


class TestSessionStore:
    """Tests for loading and saving session state."""

    def test_missing_state_gives_empty_session(self, project, config):
        """Test a fresh project has no selection or identity."""
        session = load_session(project, config)
        assert session.selected is None
        assert session.identity is None

    def test_save_and_load(self, project, config):
        """Test selection and identity survive a save/load cycle."""
        session = SessionContext(root_dir=project, config=config)
        session.selected = SelectedEnvironment(name="dev", directory=project / "envs" / "dev")
        session.identity = AccountIdentity(user="me", subscription_id="1", subscription_name="sub-dev")
        path = save_session(session)

        assert path == state_file_for(project, config)
        loaded = load_session(project, config)
        assert loaded.selected.name == "dev"
        assert loaded.selected.directory == project.resolve() / "envs" / "dev"
        assert loaded.identity == session.identity

    def test_state_is_per_root(self, tmp_path, config):
        """Test different roots use different state files."""
        assert state_file_for(tmp_path / "a", config) != state_file_for(tmp_path / "b", config)

    def test_incomplete_identity_discarded(self, project, config):
        """Test a damaged cached identity is dropped instead of raising."""
        path = state_file_for(project, config)
        path.parent.mkdir(parents=True)
        path.write_text(yaml.safe_dump({
            "selected_environment": "dev",
            "identity": {"user": "me", "subscription_id": "", "subscription_name": "x"},
        }))
        session = load_session(project, config)
        assert session.identity is None
        assert session.selected.name == "dev"

    def test_unreadable_state_ignored(self, project, config):
        """Test invalid YAML yields an empty session."""
        path = state_file_for(project, config)
        path.parent.mkdir(parents=True)
        path.write_text("selected_environment: [unclosed\n")
        assert load_session(project, config).selected is None
