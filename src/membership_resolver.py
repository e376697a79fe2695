"""Resolution of raw access strings to platform accounts.

An access string is a whitespace-separated list of tokens. Each token is
first looked up as a directory group name; only when no group has that name
is it taken to be a single user identity. Identities are then mapped to the
platform accounts the public group knows for them. Identities with no
account are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass

from config import get_logger
from directory_membership import DirectoryMembership
from identity_set import IdentitySet

logger = get_logger(service="membership_resolver")


def split_tokens(raw: str | None) -> list[str]:
    """Split an access string on whitespace. None and blank strings give no tokens."""
    if not raw:
        return []
    return raw.split()


def expand_token(token: str, directory: DirectoryMembership) -> frozenset[str]:
    """Identities named by one token. A group name takes precedence over a literal identity."""
    members = directory.members_of(token)
    if members is not None:
        return members
    return frozenset([token])


def expand_tokens(tokens: list[str], directory: DirectoryMembership) -> frozenset[str]:
    identities: set[str] = set()
    for token in tokens:
        identities |= expand_token(token, directory)
    return frozenset(identities)


def resolve_tokens(raw: str | None, directory: DirectoryMembership, identities: IdentitySet) -> frozenset[str]:
    """Platform accounts granted by an access string.

    Args:
        raw: The raw access string from the registry.
        directory: Merged directory group membership.
        identities: Accounts of the public group.

    Returns:
        Union of the platform accounts of every identity the tokens name.
        Empty when there are no tokens.
    """
    accounts: set[str] = set()
    for identity in expand_tokens(split_tokens(raw), directory):
        accounts |= identities.resolve(identity)
    return frozenset(accounts)


def find_dropped_identities(raw: str | None, directory: DirectoryMembership, identities: IdentitySet) -> frozenset[str]:
    """Identities named by an access string that have no platform account."""
    return frozenset(identity for identity in expand_tokens(split_tokens(raw), directory) if identity not in identities)


@dataclass(frozen=True)
class MembershipResolver:
    """Resolver bound to one run's snapshots.

    With ``audit_dropped`` set, identities excluded for lack of a platform
    account are logged. The resolved set is the same either way.
    """

    directory: DirectoryMembership
    identities: IdentitySet
    audit_dropped: bool = False

    def resolve(self, raw: str | None, *, context: str = "") -> frozenset[str]:
        accounts = resolve_tokens(raw, self.directory, self.identities)
        if self.audit_dropped:
            dropped = find_dropped_identities(raw, self.directory, self.identities)
            if dropped:
                logger.warning(
                    f"{context or 'Access string'}: {len(dropped)} identities have no platform account and were dropped",
                    extra={"operation": "audit_dropped", "access_string": raw, "dropped_identities": sorted(dropped)},
                )
        return accounts

    @property
    def public_accounts(self) -> frozenset[str]:
        return self.identities.accounts
