"""
Persistence for session state between commands.

One YAML file per project root under the configured state directory,
holding the selected environment name and the cached account identity.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional

import yaml

from tfproj.config.schema import TfProjConfig
from tfproj.errors import InternalInvariantError
from tfproj.session.state import AccountIdentity, SelectedEnvironment, SessionContext

logger = logging.getLogger(__name__)


def state_file_for(root_dir: Path, config: TfProjConfig) -> Path:
    """Return the state file path for a project root."""
    digest = hashlib.sha1(str(Path(root_dir).resolve()).encode()).hexdigest()[:12]
    return config.session.state_path / f"{digest}.yaml"


def load_session(root_dir: Path, config: Optional[TfProjConfig] = None) -> SessionContext:
    """Build a SessionContext for root_dir from the saved state, if any.

    A missing or unreadable state file yields an empty session.
    """
    config = config or TfProjConfig()
    root_dir = Path(root_dir).resolve()
    session = SessionContext(root_dir=root_dir, config=config)

    path = state_file_for(root_dir, config)
    if not path.exists():
        return session

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable session state {path}: {e}")
        return session

    env_name = data.get("selected_environment")
    if env_name:
        session.selected = SelectedEnvironment(
            name=env_name,
            directory=root_dir / config.layout.envs_dir / env_name,
        )

    identity = data.get("identity")
    if identity:
        try:
            session.identity = AccountIdentity.from_dict(identity)
        except InternalInvariantError:
            logger.debug("Discarding incomplete cached identity")

    return session


def save_session(session: SessionContext) -> Path:
    """Write the session's persistent fields to its state file."""
    path = state_file_for(session.root_dir, session.config)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "root_dir": str(session.root_dir),
        "selected_environment": session.selected.name if session.selected else None,
        "identity": session.identity.to_dict() if session.identity else None,
    }
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    logger.debug(f"Session saved to {path}")
    return path
