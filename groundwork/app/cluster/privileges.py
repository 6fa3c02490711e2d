"""
Process privilege drop.

Switches the process to the configured group, then user. Names are resolved
with :mod:`grp` and :mod:`pwd`; numeric ids are used as is.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd

from ...config.schemas import UserConfig
from ...exceptions import LifecycleError

logger = logging.getLogger("groundwork.privileges")


def resolve_gid(group: str | int) -> int:
    if isinstance(group, int) or str(group).isdigit():
        return int(group)
    try:
        return grp.getgrnam(str(group)).gr_gid
    except KeyError:
        raise LifecycleError("unknown group", group=group) from None


def resolve_uid(user: str | int) -> int:
    if isinstance(user, int) or str(user).isdigit():
        return int(user)
    try:
        return pwd.getpwnam(str(user)).pw_uid
    except KeyError:
        raise LifecycleError("unknown user", user=user) from None


def drop_privileges(user: UserConfig) -> bool:
    """
    Switch group then user.

    Returns:
        False when no user or group is configured, True after switching

    Raises:
        LifecycleError: If a name cannot be resolved or the switch is refused
    """
    if not user.configured:
        logger.debug("no user configured, keeping privileges")
        return False

    try:
        if user.group_id is not None:
            os.setgid(resolve_gid(user.group_id))
        if user.user_id is not None:
            os.setuid(resolve_uid(user.user_id))
    except PermissionError as e:
        raise LifecycleError(
            "cannot switch user", user=user.user_id, group=user.group_id
        ) from e

    logger.info("switched user", extra={"user": user.user_id, "group": user.group_id})
    return True
