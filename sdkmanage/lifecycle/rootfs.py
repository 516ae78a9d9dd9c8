"""
Adjustments made to a freshly unpacked target root file system.

All functions operate on files already owned by the invoking user (the
target tree is chowned before they run), so plain Python file APIs are
used.
"""

import grp
import logging
import pwd
import socket
import uuid
from pathlib import Path
from typing import List, Optional

from sdkmanage.core.exceptions import SdkEnvironmentError
from sdkmanage.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

MACHINE_ID = Path("etc/machine-id")
HOSTS = Path("etc/hosts")
PASSWD = Path("etc/passwd")
GROUP = Path("etc/group")

LOOPBACK = "127.0.0.1"
LOGIN_SHELL = "/bin/bash"


def write_machine_id(name: str, target_root: Path) -> None:
    """Give the target a unique machine id; skipped when name is empty."""
    if not name:
        logger.warning("No target name given, not generating a machine id")
        return
    atomic_write(target_root / MACHINE_ID, uuid.uuid4().hex + "\n")
    logger.debug(f"Generated machine id for {name}")


def add_hostname_to_hosts(target_root: Path, hostname: Optional[str] = None) -> None:
    """
    Make the loopback entry of the target's hosts file resolve hostname.

    The first 127.0.0.1 line gets the host name appended unless it already
    lists it. A loopback line is added if the file has none.
    """
    hostname = hostname or socket.gethostname()
    hosts = target_root / HOSTS
    lines: List[str] = []
    if hosts.exists():
        lines = hosts.read_text(encoding="utf-8").splitlines()

    for index, line in enumerate(lines):
        fields = line.split("#", 1)[0].split()
        if fields and fields[0] == LOOPBACK:
            if hostname not in fields[1:]:
                lines[index] = f"{line.rstrip()} {hostname}"
            break
    else:
        lines.append(f"{LOOPBACK} localhost.localdomain localhost {hostname}")

    atomic_write(hosts, "\n".join(lines) + "\n")


def _append_entry(path: Path, name: str, entry: str) -> None:
    lines: List[str] = []
    if path.exists():
        lines = path.read_text(encoding="utf-8").splitlines()
    if any(line.split(":", 1)[0] == name for line in lines):
        logger.debug(f"{path} already has an entry for {name}")
        return
    lines.append(entry)
    atomic_write(path, "\n".join(lines) + "\n")


def copy_user_entries(target_root: Path, uid: int, gid: int) -> None:
    """
    Copy the invoking user's passwd and group entries into the target.

    The user gets a bash login shell inside the target.

    Raises:
        SdkEnvironmentError: If uid or gid has no entry on the host
    """
    try:
        user = pwd.getpwuid(uid)
    except KeyError as e:
        raise SdkEnvironmentError(
            f"Cannot copy user into target: uid {uid} has no passwd entry"
        ) from e
    try:
        group = grp.getgrgid(gid)
    except KeyError as e:
        raise SdkEnvironmentError(
            f"Cannot copy user into target: gid {gid} has no group entry"
        ) from e

    passwd_entry = ":".join(
        [user.pw_name, "x", str(uid), str(gid), user.pw_gecos, user.pw_dir, LOGIN_SHELL]
    )
    group_entry = ":".join([group.gr_name, "x", str(gid), ",".join(group.gr_mem)])

    _append_entry(target_root / PASSWD, user.pw_name, passwd_entry)
    _append_entry(target_root / GROUP, group.gr_name, group_entry)
