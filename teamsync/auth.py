"""Credential checks and team member creation.

Credentials are compared in plain text against the user directory; there is
no hashing and no token issuance.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Optional

from .exceptions import AuthenticationError, UserValidationError
from .models import User, UserRole
from .stores.base import UserDirectory

logger = logging.getLogger(__name__)

# Seeded administrator; kept so the team always has someone who can manage it
PROTECTED_USERNAME = "admin"


def avatar_url_for(username: str) -> str:
    return f"https://picsum.photos/seed/{username}/200"


def find_user(users: list[User], username: str, password: str) -> Optional[User]:
    """First user whose username and password both match exactly."""
    for user in users:
        if user.username == username and user.password == password:
            return user
    return None


async def authenticate(directory: UserDirectory, username: str, password: str) -> User:
    """Resolve credentials to a team member.

    Directories with their own ``login`` call (the remote proxy) check the
    credentials server-side; otherwise the user list is scanned.

    Raises:
        AuthenticationError: If no user matches
        StoreReadError: If the directory cannot be read
    """
    remote_login = getattr(directory, "login", None)
    if callable(remote_login):
        user = await remote_login(username, password)
    else:
        user = find_user(await directory.list_users(), username, password)
        if user is None:
            logger.info("Rejected login for %r", username)
            raise AuthenticationError("Invalid credentials")
    logger.info("User %s logged in (%s)", user.id, user.role.value)
    return user


def new_team_member(
    name: str,
    username: str,
    password: str,
    role: UserRole = UserRole.USER,
    existing: Optional[list[User]] = None,
) -> User:
    """Build a new team member with a fresh id and a generated avatar.

    Raises:
        UserValidationError: If a field is blank or the username is taken
    """
    name, username = name.strip(), username.strip()
    missing = [f for f, v in (("name", name), ("username", username), ("password", password)) if not v]
    if missing:
        raise UserValidationError(f"Missing required field(s): {', '.join(missing)}")
    if existing and any(u.username == username for u in existing):
        raise UserValidationError(f"Username {username!r} is already taken")

    return User(
        id=str(uuid.uuid4()),
        username=username,
        name=name,
        role=UserRole(role),
        password=password,
        avatar_url=avatar_url_for(username),
        created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )
