"""SQLite-backed persistence for admin accounts."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from passlib.context import CryptContext

from .models import ADMIN_STATUSES, AdminUser

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "shopadmin.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def _verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


class Database:
    """Simple wrapper around SQLite for persisting admin accounts."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS admin_users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'admin',
                    status TEXT NOT NULL DEFAULT 'active',
                    created_at TEXT NOT NULL
                );
                """
            )

    # ------------------------------------------------------------------
    # Admin accounts
    # ------------------------------------------------------------------
    def create_user(self, username: str, password: str, *, role: str = "admin") -> AdminUser:
        """Create a new active admin account."""

        cleaned = username.strip()
        if not cleaned:
            raise ValueError("Username must not be empty")
        if not password:
            raise ValueError("Password must not be empty")

        created_at = _current_timestamp()
        password_hash = _hash_password(password)

        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO admin_users (username, password_hash, role, status, created_at)
                    VALUES (?, ?, ?, 'active', ?)
                    """,
                    (cleaned, password_hash, role, created_at.isoformat()),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("An admin with that username already exists") from exc
            user_id = cursor.lastrowid

        return AdminUser(
            id=int(user_id),
            username=cleaned,
            role=role,
            status="active",
            created_at=created_at,
        )

    def get_user(self, user_id: int) -> Optional[AdminUser]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM admin_users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_username(self, username: str) -> Optional[AdminUser]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM admin_users WHERE username = ?",
                (username.strip(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[AdminUser]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM admin_users ORDER BY id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def authenticate_user(self, username: str, password: str) -> Optional[AdminUser]:
        """Return the account when the password matches, regardless of status."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM admin_users WHERE username = ?",
                (username.strip(),),
            ).fetchone()
        if row is None:
            return None
        if not _verify_password(password, row["password_hash"]):
            return None
        return self._row_to_user(row)

    def set_user_password(self, user_id: int, password: str) -> None:
        if not password:
            raise ValueError("Password must not be empty")
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE admin_users SET password_hash = ? WHERE id = ?",
                (_hash_password(password), user_id),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Unknown admin user #{user_id}")

    def set_user_status(self, user_id: int, status: str) -> AdminUser:
        if status not in ADMIN_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(ADMIN_STATUSES)}")
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE admin_users SET status = ? WHERE id = ?",
                (status, user_id),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Unknown admin user #{user_id}")
        user = self.get_user(user_id)
        assert user is not None
        return user

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> AdminUser:
        return AdminUser(
            id=int(row["id"]),
            username=str(row["username"]),
            role=str(row["role"]),
            status=str(row["status"]),
            created_at=datetime.fromisoformat(str(row["created_at"])),
        )


__all__ = ["Database", "resolve_database_path"]
