"""
Account binding.

Makes the account provider's active subscription match the selected
environment's subscription hint, skipping the provider entirely when the
cached identity already matches.
"""

import logging

from tfproj.errors import (
    EnvironmentInvalidError,
    InternalInvariantError,
    NoEnvironmentSelectedError,
    NotAuthenticatedError,
    SubscriptionSetError,
    ToolNotFoundError,
)
from tfproj.project.environment import validate_environment
from tfproj.project.topology import scan
from tfproj.providers.base import AccountProvider
from tfproj.session.state import AccountIdentity, SessionContext

logger = logging.getLogger(__name__)


class AccountBinder:
    """Resolves and caches the account identity for the selected environment."""

    def __init__(self, provider: AccountProvider):
        """Initialize the binder.

        Args:
            provider: AccountProvider used on the slow path
        """
        self.provider = provider

    def ensure_bound(self, session: SessionContext) -> AccountIdentity:
        """Bind the selected environment's subscription.

        Returns:
            The bound AccountIdentity

        Raises:
            NoEnvironmentSelectedError: Nothing selected
            EnvironmentInvalidError: Selected environment has no hint file
            ToolNotFoundError: The account provider CLI is missing
            NotAuthenticatedError: Not logged in with the provider
            SubscriptionSetError: The hint could not be made active
        """
        if session.selected is None:
            raise NoEnvironmentSelectedError()

        topology = scan(session)
        selected = session.selected
        if selected is None:
            raise NoEnvironmentSelectedError()

        check = validate_environment(selected.name, topology, session.config.layout)
        if not check.hint_ok:
            raise EnvironmentInvalidError(selected.name, "subscription hint file missing or empty")
        hint = check.hint
        selected.hint = hint
        selected.hint_file = check.hint_file

        cached = session.identity
        if cached is not None and cached.matches(hint):
            logger.debug(f"Cached subscription '{cached.subscription_name}' matches hint, skipping provider")
            return cached

        logger.debug("Cached identity does not match hint, querying account provider")
        if not self.provider.available():
            raise ToolNotFoundError(session.config.tools.az)

        identity = self.provider.whoami()
        if identity is None:
            session.clear_identity()
            raise NotAuthenticatedError()
        session.identity = identity

        if not self.provider.set_subscription(hint):
            raise SubscriptionSetError(hint)

        identity = self.provider.whoami()
        if identity is None:
            session.clear_identity()
            raise InternalInvariantError("account provider lost the login after setting the subscription")
        session.identity = identity

        logger.info(f"Subscription set to '{identity.subscription_name}' ({identity.subscription_id})")
        return identity

    def refresh(self, session: SessionContext):
        """Drop the cached identity and query the provider again."""
        session.clear_identity()
        identity = self.provider.whoami()
        session.identity = identity
        return identity
