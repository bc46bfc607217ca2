"""
Tests for project topology discovery and environment validation.
"""

import pytest

from tfproj.config.schema import LayoutConfig
from tfproj.errors import EnvironmentNotFoundError, NothingToCheckError
from tfproj.project.environment import (
    check_environment,
    read_hint,
    require_environment,
    validate_environment,
)
from tfproj.project.topology import discover, scan
from tfproj.session.state import SelectedEnvironment


class TestDiscover:
    """Tests for discover()."""

    def test_finds_modules_and_environments(self, project):
        """Test subdirectories are listed in sorted order."""
        topology = discover(project)
        assert topology.is_project
        assert list(topology.modules) == ["network", "storage"]
        assert topology.environment_names == ["dev", "prod", "test"]

    def test_excluded_prefix(self, project):
        """Test directories starting with the excluded prefix are skipped."""
        topology = discover(project)
        assert "_template" not in topology.environments

    def test_files_are_not_environments(self, project):
        """Test plain files in envs/ are ignored."""
        (project / "envs" / "README.md").write_text("docs")
        assert "README.md" not in discover(project).environments

    def test_missing_directories(self, tmp_path):
        """Test an empty directory is not a project and does not raise."""
        topology = discover(tmp_path)
        assert not topology.is_project
        assert topology.modules == {}
        assert topology.environments == {}

    def test_custom_layout(self, tmp_path):
        """Test layout names come from configuration."""
        (tmp_path / "root").mkdir()
        (tmp_path / "stages" / "qa").mkdir(parents=True)
        topology = discover(tmp_path, LayoutConfig(main_dir="root", envs_dir="stages"))
        assert topology.is_project
        assert topology.environment_names == ["qa"]


class TestScan:
    """Tests for scan() reconciling the selection."""

    def test_vanished_selection_cleared(self, session, project):
        """Test a selection whose directory is gone is cleared."""
        session.selected = SelectedEnvironment(name="gone", directory=project / "envs" / "gone")
        scan(session)
        assert session.selected is None

    def test_existing_selection_refreshed(self, session, project):
        """Test the selected directory is refreshed from the topology."""
        session.selected = SelectedEnvironment(name="dev", directory=project / "stale")
        scan(session)
        assert session.selected.directory == project / "envs" / "dev"


class TestValidateEnvironment:
    """Tests for environment validation."""

    def test_valid_environment(self, project):
        """Test lock file and hint found."""
        check = validate_environment("dev", discover(project))
        assert check.valid
        assert check.hint == "sub-dev"
        assert check.failure_count == 0

    def test_missing_lock_and_hint_counted_separately(self, project):
        """Test both sub-checks are always evaluated."""
        (project / "envs" / "dev" / ".terraform.lock.hcl").unlink()
        (project / "envs" / "dev" / ".az-subscription").unlink()
        check = validate_environment("dev", discover(project))
        assert check.found
        assert not check.lock_ok
        assert not check.hint_ok
        assert check.failure_count == 2
        assert len(check.errors) == 2

    def test_empty_hint_fails(self, project):
        """Test an empty hint file counts as a failed hint check."""
        (project / "envs" / "dev" / ".az-subscription").write_text("  \n")
        check = validate_environment("dev", discover(project))
        assert not check.hint_ok
        assert "empty" in check.errors[0]

    def test_unknown_environment(self, project):
        """Test choices are reported for an unknown name."""
        check = validate_environment("qa", discover(project))
        assert not check.found
        assert check.choices == ["dev", "prod", "test"]
        assert check.failure_count == 1

    def test_require_environment_raises(self, project):
        """Test require_environment raises for unknown names."""
        with pytest.raises(EnvironmentNotFoundError) as exc:
            require_environment("qa", discover(project))
        assert exc.value.choices == ["dev", "prod", "test"]

    def test_read_hint_first_line(self, tmp_path):
        """Test only the stripped first line is used."""
        hint = tmp_path / "hint"
        hint.write_text("  my-sub  \nsecond\n")
        assert read_hint(hint) == "my-sub"
        assert read_hint(tmp_path / "missing") is None


class TestCheckEnvironment:
    """Tests for check_environment()."""

    def test_nothing_selected(self, session):
        """Test that a name or a selection is required."""
        with pytest.raises(NothingToCheckError):
            check_environment(session)

    def test_uses_selection(self, session, project):
        """Test the selected environment is checked when no name is given."""
        session.selected = SelectedEnvironment(name="prod", directory=project / "envs" / "prod")
        assert check_environment(session).name == "prod"
