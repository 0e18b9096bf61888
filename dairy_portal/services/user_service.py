"""
User Service — account CRUD, authentication and default-account seeding.

Every management action performed by an admin is written to the activity
trail in the same transaction as the change itself.
"""

import logging

from sqlalchemy import select

from dairy_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from dairy_portal.models import db
from dairy_portal.models.activity import write_activity
from dairy_portal.models.auth import ROLE_ADMIN, ROLE_USER, VALID_ROLES, User
from dairy_portal.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = (
    {"name": "Admin User", "username": "admin", "password": "admin123", "role": ROLE_ADMIN},
    {"name": "John Doe", "username": "john", "password": "password123", "role": ROLE_USER},
    {"name": "Jane Smith", "username": "jane", "password": "password123", "role": ROLE_USER},
)


def _normalise_role(role: str) -> str:
    role = (role or "").strip().upper()
    if role not in VALID_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}",
            details={"role": role},
        )
    return role


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def get_user_by_username(username: str) -> User | None:
    return db.session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()


def list_users() -> list[User]:
    return list(db.session.execute(select(User).order_by(User.id)).scalars())


def create_user(name: str, username: str, password: str, role: str, actor: User | None = None) -> User:
    """Create an account; usernames are unique, roles upper-cased."""
    role = _normalise_role(role)
    username = username.strip()
    if get_user_by_username(username) is not None:
        raise ConflictError(resource="User", field="username", value=username)

    user = User(
        name=name.strip(),
        username=username,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.flush()

    if actor is not None:
        write_activity(
            actor=actor,
            action="CREATE_USER",
            resource_type="USER",
            resource_id=user.id,
            resource_name=user.username,
            description=f"Created user: {user.name} ({user.username})",
        )
    db.session.commit()
    logger.info("User created", extra={"user_id": user.id, "role": user.role})
    return user


def update_user(user_id: int, actor: User, **fields) -> User:
    """Update name / username / role / password; blank values are ignored."""
    user = get_user(user_id)

    name = (fields.get("name") or "").strip()
    username = (fields.get("username") or "").strip()
    role = fields.get("role")
    password = fields.get("password")

    if name:
        user.name = name
    if username and username != user.username:
        if get_user_by_username(username) is not None:
            raise ConflictError(resource="User", field="username", value=username)
        user.username = username
    if role:
        user.role = _normalise_role(role)
    if password:
        user.password_hash = hash_password(password)

    write_activity(
        actor=actor,
        action="UPDATE_USER",
        resource_type="USER",
        resource_id=user.id,
        resource_name=user.username,
        description=f"Updated user: {user.name} ({user.username})",
    )
    db.session.commit()
    return user


def delete_user(user_id: int, actor: User) -> None:
    """Delete an account together with its uploads, drafts and logs."""
    user = get_user(user_id)
    if user.id == actor.id:
        raise ValidationError("Administrators cannot delete their own account")

    label = f"{user.name} ({user.username})"
    db.session.delete(user)
    write_activity(
        actor=actor,
        action="DELETE_USER",
        resource_type="USER",
        resource_id=user_id,
        resource_name=label,
        description=f"Deleted user: {label}",
    )
    db.session.commit()
    logger.info("User deleted", extra={"user_id": user_id})


def authenticate(username: str, password: str) -> User | None:
    """Return the user for a valid username/password pair, else None."""
    user = get_user_by_username((username or "").strip())
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def seed_default_users() -> int:
    """Create the default admin and demo accounts if missing.

    Returns the number of accounts created.
    """
    created = 0
    for account in DEFAULT_ACCOUNTS:
        if get_user_by_username(account["username"]) is not None:
            continue
        db.session.add(User(
            name=account["name"],
            username=account["username"],
            password_hash=hash_password(account["password"]),
            role=account["role"],
        ))
        created += 1
    db.session.commit()
    return created
