# Overview: Staff user records; passwords are stored as bcrypt hashes.

"""
Users

Plain records that stores can be linked to. There is no login or
permission layer; the password hash is kept so an auth layer can be added
without a data migration.

- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, with at least one letter and one digit
- Email is unique (case-insensitive, stored lower-cased)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..models import StoreUser, User
from ..validation import ConflictError, ValidationError
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USER_MUTABLE_FIELDS = {"name", "role", "email"}


def validate_password_strength(password: str | None) -> None:
    if not password or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def _normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValidationError("A valid email is required")
    return value


def _ensure_email_free(email: str, *, exclude_id: int | None = None) -> None:
    existing = gateway.first(User, email=email)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError("Email already in use.")


def list_users() -> list[User]:
    try:
        return gateway.select(User, order_by="email")
    except DataAccessError as exc:
        raise StorageError(f"Could not load users: {exc}", failed_step="select_users") from exc


def get_user(user_id: int) -> User | None:
    return gateway.get_by_id(User, user_id)


def create_user(
    email: str,
    password: str,
    *,
    name: str | None = None,
    role: str | None = None,
) -> User:
    """
    Raises:
        ValidationError: bad email or weak password
        ConflictError: email already registered
    """
    email = _normalize_email(email)
    password_hash = hash_password(password)
    _ensure_email_free(email)
    try:
        return gateway.insert(
            User,
            {
                "email": email,
                "password_hash": password_hash,
                "name": (name or "").strip() or None,
                "role": (role or "").strip() or None,
            },
        )
    except DataAccessError as exc:
        raise StorageError(f"Could not create user: {exc}", failed_step="insert_user") from exc


def update_user(user_id: int, patch: dict) -> User | None:
    values = {k: v for k, v in patch.items() if k in USER_MUTABLE_FIELDS}
    if "email" in values:
        values["email"] = _normalize_email(values["email"])
        _ensure_email_free(values["email"], exclude_id=user_id)
    for key in ("name", "role"):
        if key in values:
            values[key] = (values[key] or "").strip() or None
    try:
        return gateway.update_by_id(User, user_id, values)
    except DataAccessError as exc:
        raise StorageError(f"Could not update user: {exc}", failed_step="update_user") from exc


def set_password(user_id: int, password: str) -> bool:
    password_hash = hash_password(password)
    try:
        return gateway.update_by_id(User, user_id, {"password_hash": password_hash}) is not None
    except DataAccessError as exc:
        raise StorageError(f"Could not update password: {exc}", failed_step="update_user") from exc


def delete_user(user_id: int) -> bool:
    """Store assignments are removed with the user."""
    try:
        with gateway.atomic():
            gateway.delete_where(StoreUser, commit=False, user_id=user_id)
            deleted = gateway.delete_by_id(User, user_id, commit=False)
    except DataAccessError as exc:
        raise StorageError(f"Could not delete user: {exc}", failed_step="delete_user") from exc
    return deleted
