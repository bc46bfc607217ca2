"""
Multi-step init and upgrade orchestration.

For each environment: preflight, ``terraform init`` in the environment
directory, then an offline init of every local module and of the main
module using the environment's provider cache and lock file. Failures are
tallied per phase and never stop the remaining environments.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from tfproj.core.preflight import BoundContext, Preflight
from tfproj.errors import UserError
from tfproj.project.topology import ProjectTopology, scan
from tfproj.session.state import SessionContext

logger = logging.getLogger(__name__)

PHASE_ENV = "env"
PHASE_MODULES = "modules"
PHASE_MAIN = "main"
ALL_PHASES = (PHASE_ENV, PHASE_MODULES, PHASE_MAIN)


@dataclass
class EnvironmentOutcome:
    """Per-phase results for one environment.

    A phase result is None when the phase was not attempted.
    """
    name: str
    preflight_ok: bool = False
    env_init_ok: Optional[bool] = None
    modules_ok: Optional[bool] = None
    main_ok: Optional[bool] = None
    error: Optional[str] = None

    @property
    def failure_count(self) -> int:
        if not self.preflight_ok:
            return 1
        return sum(1 for ok in (self.env_init_ok, self.modules_ok, self.main_ok) if ok is False)


@dataclass
class BatchResult:
    """Outcomes of an init/upgrade batch with four independent tallies."""
    outcomes: list[EnvironmentOutcome] = field(default_factory=list)

    @property
    def preflight_failures(self) -> int:
        return sum(1 for o in self.outcomes if not o.preflight_ok)

    @property
    def env_init_failures(self) -> int:
        return sum(1 for o in self.outcomes if o.env_init_ok is False)

    @property
    def module_init_failures(self) -> int:
        return sum(1 for o in self.outcomes if o.modules_ok is False)

    @property
    def main_init_failures(self) -> int:
        return sum(1 for o in self.outcomes if o.main_ok is False)

    @property
    def failure_count(self) -> int:
        return (
            self.preflight_failures
            + self.env_init_failures
            + self.module_init_failures
            + self.main_init_failures
        )

    @property
    def success(self) -> bool:
        return self.failure_count == 0


class InitOrchestrator:
    """Runs init/upgrade across one or more environments."""

    def __init__(self, terraform, preflight: Preflight):
        self.terraform = terraform
        self.preflight = preflight

    def init_project(
        self,
        session: SessionContext,
        upgrade: bool = False,
        targets: Optional[Iterable[str]] = None,
        phases: Iterable[str] = ALL_PHASES,
    ) -> BatchResult:
        """Initialise targets, or every environment when targets is None.

        In whole-project mode the selection is cleared afterwards so that a
        following command cannot silently act on the last environment.

        Args:
            session: Session state
            upgrade: Pass -upgrade to the environment init
            targets: Environment names, in order
            phases: Subset of env/modules/main to run

        Returns:
            BatchResult
        """
        whole_project = targets is None
        if whole_project:
            targets = scan(session).environment_names
            if not targets:
                logger.warning("No environments found")

        phases = tuple(phases)
        result = BatchResult()
        for name in targets:
            result.outcomes.append(self.init_environment(session, name, upgrade, phases))

        if whole_project:
            logger.info("Clearing selected environment after processing all environments")
            session.clear_selection()

        return result

    def init_environment(
        self,
        session: SessionContext,
        env_name: Optional[str],
        upgrade: bool = False,
        phases: Iterable[str] = ALL_PHASES,
    ) -> EnvironmentOutcome:
        """Run the requested phases for one environment.

        A failed env init skips the module and main phases.
        """
        phases = tuple(phases)
        outcome = EnvironmentOutcome(name=env_name or "")

        try:
            ctx = self.preflight.run(session, env_name)
        except UserError as e:
            outcome.error = e.message
            logger.error(f"Preflight failed for '{outcome.name or '<none>'}': {e.message}")
            if e.hint:
                logger.error(f"  please run '{e.hint}'")
            return outcome

        outcome.name = ctx.env_name
        outcome.preflight_ok = True
        topology = scan(session)

        if PHASE_ENV in phases:
            outcome.env_init_ok = self._init_env_dir(ctx, upgrade)
            if not outcome.env_init_ok:
                return outcome

        if PHASE_MODULES in phases:
            outcome.modules_ok = self.init_modules(session, ctx, topology)

        if PHASE_MAIN in phases:
            outcome.main_ok = self.init_main(session, ctx, topology)

        return outcome

    def _init_env_dir(self, ctx: BoundContext, upgrade: bool) -> bool:
        logger.info(f"Initializing environment: {ctx.env_name}")
        result = self.terraform.init(ctx.env_dir, upgrade=upgrade, env=ctx.environ())
        if not result.success:
            logger.error(f"init in {ctx.env_dir} failed")
        return result.success

    def init_modules(self, session: SessionContext, ctx: BoundContext, topology: ProjectTopology) -> bool:
        """Initialise every local module; the first failure ends the phase."""
        if not self._providers_ready(ctx):
            return False
        if not topology.modules:
            logger.info(f"No modules found to init in: {ctx.env_name}")
            return True

        for name, module_dir in topology.modules.items():
            logger.info(f"Initializing module in: {module_dir.relative_to(topology.root_dir)}")
            if not self.init_directory(session, ctx, module_dir):
                logger.error(f"Failed to init module in: {module_dir}")
                return False
        return True

    def init_main(self, session: SessionContext, ctx: BoundContext, topology: ProjectTopology) -> bool:
        """Initialise the main module directory."""
        if not self._providers_ready(ctx):
            return False
        logger.info(f"Initializing dir : {topology.main_dir.relative_to(topology.root_dir)}")
        if not self.init_directory(session, ctx, topology.main_dir):
            logger.error(f"Failed to init directory: {topology.main_dir}")
            return False
        return True

    def init_directory(self, session: SessionContext, ctx: BoundContext, directory: Path) -> bool:
        """Offline init of directory from the environment's provider cache.

        The environment lock file is copied in for the init and always
        removed again afterwards.
        """
        layout = session.config.layout
        source_lock = ctx.lock_file or ctx.env_dir / layout.lock_file
        copied_lock = directory / layout.lock_file

        session.cancel.check()
        try:
            shutil.copyfile(source_lock, copied_lock)
        except OSError as e:
            logger.error(f"Failed to copy {source_lock} to {directory}: {e}")
            return False

        try:
            shutil.rmtree(directory / ".terraform", ignore_errors=True)
            result = self.terraform.init_offline(
                directory,
                plugin_dir=self.providers_dir(ctx),
                env=ctx.environ(),
            )
            return result.success
        finally:
            copied_lock.unlink(missing_ok=True)

    @staticmethod
    def providers_dir(ctx: BoundContext) -> Path:
        return ctx.env_dir / ".terraform" / "providers"

    def _providers_ready(self, ctx: BoundContext) -> bool:
        providers = self.providers_dir(ctx)
        if providers.is_dir():
            return True
        logger.error("Providers directory not found in selected environment.")
        logger.error(f"  expected to find: {providers}")
        logger.error(f"  please run 'tfproj init env {ctx.env_name}' first")
        return False
