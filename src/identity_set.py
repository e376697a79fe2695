"""Platform accounts known to the group store's public group.

The public group is the universe of accounts eligible for any study group.
One directory identity can own several accounts, one per zone
(``alice#zoneA``, ``alice#zoneB``).
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from config import get_logger

logger = get_logger(service="identity_set")

ZONE_SEPARATOR = "#"


def base_identity(account: str) -> str:
    """Return the identity part of a possibly zone-qualified account name."""
    return account.split(ZONE_SEPARATOR, 1)[0]


@dataclass(frozen=True)
class IdentitySet:
    """Immutable snapshot of the public group's accounts, indexed by identity."""

    accounts: frozenset[str]
    _by_identity: Mapping[str, frozenset[str]] = field(repr=False, compare=False)

    @classmethod
    def from_public_members(cls, accounts: Iterable[str]) -> IdentitySet:
        grouped: dict[str, set[str]] = defaultdict(set)
        for account in accounts:
            grouped[base_identity(account)].add(account)
        by_identity = MappingProxyType({identity: frozenset(members) for identity, members in grouped.items()})
        return cls(
            accounts=frozenset(account for members in by_identity.values() for account in members),
            _by_identity=by_identity,
        )

    def resolve(self, identity: str) -> frozenset[str]:
        """Platform accounts registered for an identity, empty if it has none."""
        return self._by_identity.get(identity, frozenset())

    def __contains__(self, identity: object) -> bool:
        return identity in self._by_identity

    def __iter__(self) -> Iterator[str]:
        return iter(self.accounts)

    def __len__(self) -> int:
        return len(self.accounts)


def load_identity_set(store, public_group_name: str = "public") -> IdentitySet:  # noqa: ANN001
    """Build the identity set from a group store's listing of the public group."""
    members = store.list_group(public_group_name)
    identities = IdentitySet.from_public_members(members)
    logger.info(f"The {public_group_name} group has {len(identities)} members")
    logger.debug(f"{public_group_name} group membership: {', '.join(sorted(identities.accounts))}")
    return identities
