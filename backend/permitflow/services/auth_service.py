# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every permit action must be attributable. Uses bcrypt for secure
password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..errors import ValidationFailed
from ..extensions import db
from ..models import User, Role
from ..permissions import DEFAULT_ROLE_NAME, canonical_role_name
from permitflow.time_utils import utcnow


class PasswordValidationError(ValidationFailed):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role_name: str | None = None,
    *,
    phone: str | None = None,
    department: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Legacy role names (e.g. SAFETY_OFFICER) are mapped to their canonical
    role before lookup.

    Raises:
        ValidationFailed: If the email is taken or the role does not exist
        PasswordValidationError: If password doesn't meet requirements
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationFailed("email is required")

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise ValidationFailed("A user with this email already exists")

    name = canonical_role_name(role_name or DEFAULT_ROLE_NAME)
    role = db.session.query(Role).filter_by(name=name).first()
    if role is None:
        raise ValidationFailed(f"Role {name} not found")

    password_hash = hash_password(password)

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        department=department,
        password_hash=password_hash,
        role_id=role.id,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
