# Overview: Service-layer operations for staff accounts; password/PIN hashing and login.

"""
Authentication Service

Passwords and PINs are hashed with bcrypt. Admin accounts work the counter
and must present their PIN at login in addition to the password;
superadmins log in with password only.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, Sale
from ..models.auth import ROLE_ADMIN, ROLE_SUPERADMIN, ROLES
from platepos.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class PinValidationError(Exception):
    """Raised when a PIN is not 4-6 digits."""
    pass


class UserError(Exception):
    """Raised for account management errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def validate_pin(pin: str) -> None:
    if not pin or not re.fullmatch(r'\d{4,6}', str(pin)):
        raise PinValidationError("PIN must be 4 to 6 digits")


def _hash_secret(secret: str) -> str:
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(secret.encode('utf-8'), salt).decode('utf-8')


def _check_secret(secret: str | None, secret_hash: str | None) -> bool:
    if not secret or not secret_hash:
        return False
    try:
        return bcrypt.checkpw(secret.encode('utf-8'), secret_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def hash_password(password: str) -> str:
    """Hash password using bcrypt after validating its strength."""
    validate_password_strength(password)
    return _hash_secret(password)


def hash_pin(pin: str) -> str:
    validate_pin(pin)
    return _hash_secret(str(pin))


def verify_password(password: str, password_hash: str) -> bool:
    return _check_secret(password, password_hash)


def verify_pin(pin: str | None, pin_hash: str | None) -> bool:
    return _check_secret(str(pin) if pin is not None else None, pin_hash)


def create_user(
    username: str,
    password: str,
    role: str = ROLE_ADMIN,
    pin: str | None = None,
    site: str | None = None,
) -> User:
    """
    Create a staff account.

    Admins require a PIN. Raises UserError for duplicate usernames or
    unknown roles, PasswordValidationError / PinValidationError for weak
    credentials.
    """
    username = (username or "").strip()
    if not username:
        raise UserError("username required")
    if role not in ROLES:
        raise UserError(f"Unknown role: {role}", details={"allowed": list(ROLES)})
    if role == ROLE_ADMIN and not pin:
        raise UserError("Admins require a PIN")

    if db.session.query(User).filter_by(username=username).first():
        raise UserError("Username already exists", details={"username": username})

    user = User(
        username=username,
        role=role,
        password_hash=hash_password(password),
        pin_hash=hash_pin(pin) if pin else None,
        site=site,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str, pin: str | None = None) -> User | None:
    """
    Return the user for valid credentials, or None.

    Admins must also supply the correct PIN. Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(username=username).first()
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if user.role == ROLE_ADMIN and not verify_pin(pin, user.pin_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def delete_user(user_id: int, acting_user: User) -> str:
    """
    Delete a staff account. Users cannot delete themselves, and the last
    superadmin cannot be removed. Their sales keep the username snapshot.
    Returns the deleted username.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise UserError("User not found", details={"user_id": user_id})

    if user.id == acting_user.id:
        raise UserError("You cannot delete your own account")

    if user.role == ROLE_SUPERADMIN:
        remaining = db.session.query(User).filter(
            User.role == ROLE_SUPERADMIN, User.id != user.id
        ).count()
        if remaining == 0:
            raise UserError("Cannot delete the last superadmin")

    db.session.query(Sale).filter_by(created_by_user_id=user.id).update(
        {Sale.created_by_user_id: None}, synchronize_session=False
    )
    username = user.username
    db.session.delete(user)
    db.session.commit()
    return username
