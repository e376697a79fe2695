"""LDAP directory client.

Reads posix groups (name, gid, memberUid) and the primary gid of every active
account. Any bind, search or unbind failure is fatal for the run and raised
as DirectoryError.
"""

from __future__ import annotations

from typing import Any, Iterator

import ldap3
from ldap3.core.exceptions import LDAPException

import config as config_module
from config import get_logger
from directory_membership import DirectoryMembership, build_directory_membership
from entities import DirectoryGroup, PrimaryGroupAssociation
from errors import DirectoryError

logger = get_logger(service="directory")

_PAGED_RESULTS_CONTROL = "1.2.840.113556.1.4.319"
_LDAP_SUCCESS = 0


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _first(value: Any) -> Any:
    values = _as_list(value)
    return values[0] if values else None


def _parse_gid(value: Any) -> int | None:
    try:
        return int(_first(value))
    except (TypeError, ValueError):
        return None


class DirectoryClient:
    """Read-only LDAP session, bound on enter and unbound on exit."""

    def __init__(  # noqa: PLR0913
        self,
        host: str,
        *,
        group_base: str,
        group_filter: str,
        people_base: str,
        people_filter: str,
        bind_dn: str | None = None,
        bind_password: str | None = None,
        page_size: int = 500,
        connection: ldap3.Connection | None = None,
    ) -> None:
        self.host = host
        self.group_base = group_base
        self.group_filter = group_filter
        self.people_base = people_base
        self.people_filter = people_filter
        self.page_size = page_size
        if connection is None:
            server = ldap3.Server(host, get_info=ldap3.NONE)
            connection = ldap3.Connection(server, user=bind_dn, password=bind_password, read_only=True)
        self._conn = connection

    @classmethod
    def from_config(cls, cfg: config_module.Config) -> DirectoryClient:
        return cls(
            cfg.ldap_host,
            group_base=cfg.ldap_group_base,
            group_filter=cfg.ldap_group_filter,
            people_base=cfg.ldap_people_base,
            people_filter=cfg.ldap_people_filter,
            bind_dn=cfg.ldap_bind_dn,
            bind_password=cfg.ldap_bind_password,
            page_size=cfg.ldap_page_size,
        )

    def __enter__(self) -> DirectoryClient:
        self.bind()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        # Do not mask the error that is already unwinding
        if exc_type is not None:
            try:
                self._conn.unbind()
            except LDAPException as e:
                logger.warning(f"LDAP failed to unbind '{self.host}': {e}")
            return
        self.unbind()

    def bind(self) -> None:
        try:
            bound = self._conn.bind()
        except LDAPException as e:
            logger.error(f"LDAP failed to bind to '{self.host}': {e}")
            raise DirectoryError(f"LDAP failed to bind to '{self.host}': {e}") from e
        if not bound:
            description = self._conn.result.get("description") if self._conn.result else None
            logger.error(f"LDAP failed to bind to '{self.host}': {description}")
            raise DirectoryError(f"LDAP failed to bind to '{self.host}': {description}")
        logger.debug(f"Bound to LDAP server '{self.host}'")

    def unbind(self) -> None:
        try:
            unbound = self._conn.unbind()
        except LDAPException as e:
            logger.error(f"LDAP failed to unbind '{self.host}': {e}")
            raise DirectoryError(f"LDAP failed to unbind '{self.host}': {e}") from e
        if unbound is False:
            logger.error(f"LDAP failed to unbind '{self.host}'")
            raise DirectoryError(f"LDAP failed to unbind '{self.host}'")

    def _search(self, base: str, search_filter: str, attributes: list[str]) -> Iterator[dict[str, Any]]:
        """Yield the attribute dicts of every entry matching a paged search."""
        cookie = None
        while True:
            try:
                self._conn.search(
                    search_base=base,
                    search_filter=search_filter,
                    search_scope=ldap3.SUBTREE,
                    attributes=attributes,
                    paged_size=self.page_size,
                    paged_cookie=cookie,
                )
            except LDAPException as e:
                logger.error(f"LDAP query base: '{base}', filter: '{search_filter}' failed: {e}")
                raise DirectoryError(f"LDAP query base: '{base}', filter: '{search_filter}' failed: {e}") from e

            result = self._conn.result or {}
            if result.get("result", _LDAP_SUCCESS) != _LDAP_SUCCESS:
                message = result.get("message") or result.get("description")
                logger.error(f"LDAP query base: '{base}', filter: '{search_filter}' failed: {message}")
                raise DirectoryError(f"LDAP query base: '{base}', filter: '{search_filter}' failed: {message}")

            for entry in self._conn.response or []:
                if entry.get("type") == "searchResEntry":
                    yield entry.get("attributes") or {}

            cookie = result.get("controls", {}).get(_PAGED_RESULTS_CONTROL, {}).get("value", {}).get("cookie")
            if not cookie:
                break

    def list_groups(self) -> list[DirectoryGroup]:
        """All directory groups with their gid and direct member uids."""
        groups: list[DirectoryGroup] = []
        for attributes in self._search(self.group_base, self.group_filter, ["cn", "gidNumber", "memberUid"]):
            name = _first(attributes.get("cn"))
            gid = _parse_gid(attributes.get("gidNumber"))
            if not name or gid is None:
                logger.debug(f"Skipping directory group without a name or gid: {attributes}")
                continue
            groups.append(
                DirectoryGroup(
                    name=str(name),
                    gid=gid,
                    members=frozenset(str(uid) for uid in _as_list(attributes.get("memberUid"))),
                )
            )
        logger.info(f"Fetched {len(groups)} groups from LDAP")
        return groups

    def list_primary_groups(self) -> list[PrimaryGroupAssociation]:
        """The primary gid of every account matching the people filter."""
        associations: list[PrimaryGroupAssociation] = []
        for attributes in self._search(self.people_base, self.people_filter, ["uid", "gidNumber"]):
            uid = _first(attributes.get("uid"))
            gid = _parse_gid(attributes.get("gidNumber"))
            if not uid or gid is None:
                continue
            associations.append(PrimaryGroupAssociation(uid=str(uid), gid=gid))
        logger.info(f"Fetched {len(associations)} primary group associations from LDAP")
        return associations


def fetch_directory_membership(client: DirectoryClient) -> DirectoryMembership:
    """Query the directory once and build the merged membership snapshot."""
    with client:
        groups = client.list_groups()
        associations = client.list_primary_groups()
    return build_directory_membership(groups, associations)
