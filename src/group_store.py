"""iRODS group administration through the ``igroupadmin`` client.

Group administrators (as opposed to rodsadmin users) can only manage groups
through ``igroupadmin``, so every operation runs that command and parses its
plain-text output. Accounts are written ``user#zone``.
"""

from __future__ import annotations

import re
import shlex
import subprocess
from typing import Optional

from config import get_logger
from errors import GroupStoreError

logger = get_logger(service="group_store")

_NO_ROWS = "No rows found"
_MEMBERS_HEADER = re.compile(r"^Members of group .*:$")
_IENV_USER = re.compile(r"irods_user_name\s*-\s*(\S+)")
_IENV_ZONE = re.compile(r"irods_zone_name\s*-\s*(\S+)")


def _parse_listing(output: str) -> list[str]:
    entries: list[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line == _NO_ROWS or _MEMBERS_HEADER.match(line):
            continue
        entries.append(line)
    return entries


class GroupAdmin:
    def __init__(self, command: str = "igroupadmin", ienv_command: str = "ienv") -> None:
        self._command = shlex.split(command)
        self._ienv_command = shlex.split(ienv_command)
        self._groups: Optional[set[str]] = None
        self._user: Optional[str] = None

    def _run(self, args: list[str]) -> str:
        try:
            completed = subprocess.run(args, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise GroupStoreError(f"Group store command not found: '{args[0]}'") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            logger.error(f"Group store command failed: {shlex.join(args)}: {stderr}")
            raise GroupStoreError(f"Group store command failed: {shlex.join(args)} (exit {e.returncode}): {stderr}") from e
        logger.debug(f"Ran {shlex.join(args)}")
        return completed.stdout

    def _igroupadmin(self, *args: str) -> str:
        return self._run([*self._command, *args])

    @property
    def user(self) -> str:
        """The acting account, ``user#zone``, as reported by ienv."""
        if self._user is None:
            output = self._run(self._ienv_command)
            user_match = _IENV_USER.search(output)
            if user_match is None:
                raise GroupStoreError("Could not determine the acting iRODS user from ienv")
            zone_match = _IENV_ZONE.search(output)
            self._user = f"{user_match.group(1)}#{zone_match.group(1)}" if zone_match else user_match.group(1)
        return self._user

    def list_groups(self) -> set[str]:
        if self._groups is None:
            self._groups = set(_parse_listing(self._igroupadmin("lg")))
            logger.debug(f"Group store has {len(self._groups)} groups")
        return set(self._groups)

    def group_exists(self, group_name: str) -> bool:
        return group_name in self.list_groups()

    def list_group(self, group_name: str) -> list[str]:
        return _parse_listing(self._igroupadmin("lg", group_name))

    def make_group(self, group_name: str) -> None:
        self._igroupadmin("mkgroup", group_name)
        if self._groups is not None:
            self._groups.add(group_name)

    def add_member(self, group_name: str, account: str) -> None:
        self._igroupadmin("atg", group_name, account)

    def remove_member(self, group_name: str, account: str) -> None:
        self._igroupadmin("rfg", group_name, account)
