# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Staff accounts: bcrypt password hashing, authentication, and user management
used by the admin routes and the CLI.
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, SessionToken
from ..permissions import ROLE_ADMIN, ROLE_GLOBAL_ADMIN, VALID_ROLES, filter_valid_modules
from ..validation import ValidationError, ConflictError, NotFoundError
from tripdesk.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def authenticate(identifier: str, password: str) -> User | None:
    """
    Look up an active user by username or email and check the password.

    Returns the user on success (and stamps last_login_at), None otherwise.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier)
    ).first()

    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def _text(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("Expected a string value")
    return value.strip()


def _clean_permissions(permissions) -> list[str]:
    if permissions is None:
        return []
    if not isinstance(permissions, list) or not all(isinstance(p, str) for p in permissions):
        raise ValidationError("permissions must be a list of module keys")
    return filter_valid_modules(permissions)


def create_user(
    username: str,
    email: str,
    password: str,
    first_name: str,
    last_name: str = "",
    role: str = ROLE_ADMIN,
    permissions: list[str] | None = None,
) -> User:
    """
    Create a staff user. Unknown module keys are dropped.

    Raises ValidationError for bad input, ConflictError if the username or
    email is taken.
    """
    username = _text(username)
    email = _text(email).lower()
    first_name = _text(first_name)

    if not username:
        raise ValidationError("username is required")
    if not email:
        raise ValidationError("email is required")
    if not first_name:
        raise ValidationError("first_name is required")
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError(f"Username '{username}' already exists")
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError(f"Email '{email}' already exists")

    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=_text(last_name),
        password_hash=hash_password(password),
        role=role,
        permissions=_clean_permissions(permissions),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created staff user %s (role=%s)", user.username, user.role)
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user_access(
    user_id: int,
    acting_user_id: int,
    role: str | None = None,
    permissions=None,
) -> User:
    """
    Change a user's role and/or module list.

    A global_admin may not move their own account off global_admin.
    """
    user = get_user(user_id)

    if role is not None:
        if role not in VALID_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")
        if user.id == acting_user_id and user.role == ROLE_GLOBAL_ADMIN and role != ROLE_GLOBAL_ADMIN:
            raise ValidationError("You cannot remove your own global_admin role")
        user.role = role

    if permissions is not None:
        user.permissions = _clean_permissions(permissions)

    db.session.commit()
    current_app.logger.info(
        "User %s access changed by user %s: role=%s permissions=%s",
        user.username, acting_user_id, user.role, user.permissions,
    )
    return user


def set_password(user_id: int, new_password: str) -> User:
    user = get_user(user_id)
    user.password_hash = hash_password(new_password)
    db.session.commit()
    return user


def delete_user(user_id: int, acting_user_id: int) -> None:
    """Hard delete. Sessions of the user are removed in the same transaction."""
    if user_id == acting_user_id:
        raise ValidationError("You cannot delete your own account")

    user = get_user(user_id)
    username = user.username

    db.session.query(SessionToken).filter_by(user_id=user_id).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User %s deleted by user %s", username, acting_user_id)
