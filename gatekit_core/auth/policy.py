"""
Operation policy table.

Every routed operation has one entry naming the scopes an API key needs to call
it and whether it skips authentication entirely. The auth resolver consults this
table at dispatch time; routes refer to their entry by name.
"""

from __future__ import annotations

from dataclasses import dataclass

from gatekit_core.domain.auth import ApiScope


@dataclass(frozen=True)
class OperationPolicy:
    """Authorization requirements of a single operation."""

    name: str
    required_scopes: tuple[str, ...] = ()
    public: bool = False


def _policy(name: str, *scopes: ApiScope, public: bool = False) -> OperationPolicy:
    return OperationPolicy(
        name=name,
        required_scopes=tuple(scope.value for scope in scopes),
        public=public,
    )


OPERATION_POLICIES: dict[str, OperationPolicy] = {
    p.name: p
    for p in (
        _policy("health", public=True),
        # Local auth
        _policy("auth.signup", public=True),
        _policy("auth.login", public=True),
        _policy("auth.whoami"),
        _policy("auth.accept_invite", public=True),
        _policy("auth.update_password"),
        _policy("auth.update_profile"),
        # Projects
        _policy("projects.create", ApiScope.PROJECTS_WRITE),
        _policy("projects.list", ApiScope.PROJECTS_READ),
        _policy("projects.get", ApiScope.PROJECTS_READ),
        _policy("projects.update", ApiScope.PROJECTS_WRITE),
        _policy("projects.delete", ApiScope.PROJECTS_WRITE),
        # Members
        _policy("members.list", ApiScope.MEMBERS_READ),
        _policy("members.add", ApiScope.MEMBERS_WRITE),
        _policy("members.update", ApiScope.MEMBERS_WRITE),
        _policy("members.remove", ApiScope.MEMBERS_WRITE),
        _policy("members.invite", ApiScope.MEMBERS_WRITE),
        # API keys
        _policy("keys.create", ApiScope.KEYS_WRITE),
        _policy("keys.list", ApiScope.KEYS_READ),
        _policy("keys.revoke", ApiScope.KEYS_WRITE),
        _policy("keys.roll", ApiScope.KEYS_WRITE),
        # Identities
        _policy("identities.create", ApiScope.IDENTITIES_WRITE),
        _policy("identities.list", ApiScope.IDENTITIES_READ),
        _policy("identities.lookup", ApiScope.IDENTITIES_READ),
        _policy("identities.get", ApiScope.IDENTITIES_READ),
        _policy("identities.update", ApiScope.IDENTITIES_WRITE),
        _policy("identities.delete", ApiScope.IDENTITIES_WRITE),
        _policy("identities.add_alias", ApiScope.IDENTITIES_WRITE),
        _policy("identities.remove_alias", ApiScope.IDENTITIES_WRITE),
        _policy("identities.messages", ApiScope.IDENTITIES_READ, ApiScope.MESSAGES_READ),
        _policy("identities.reactions", ApiScope.IDENTITIES_READ, ApiScope.MESSAGES_READ),
        # Messages
        _policy("messages.list", ApiScope.MESSAGES_READ),
        _policy("messages.stats", ApiScope.MESSAGES_READ),
        _policy("messages.sent", ApiScope.MESSAGES_READ),
        _policy("messages.get", ApiScope.MESSAGES_READ),
        _policy("messages.cleanup", ApiScope.MESSAGES_WRITE),
    )
}


def get_policy(name: str) -> OperationPolicy:
    """Look up an operation's policy.

    Raises:
        KeyError: If the operation is not registered.
    """
    return OPERATION_POLICIES[name]
