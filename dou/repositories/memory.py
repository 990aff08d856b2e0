"""In-memory user store backing the demo handlers and tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from dou.schemas.user import User


@dataclass(slots=True)
class InMemoryStore:
    """Simple, deterministic store for the demo service."""

    users: list[User] = field(default_factory=list)
    user_write_count: int = 0
    save_failure_message: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def list_users(self) -> list[User]:
        with self._lock:
            return list(self.users)

    def save_user(self, user: User) -> User:
        if self.save_failure_message is not None:
            raise RuntimeError(self.save_failure_message)
        with self._lock:
            self.users.append(user)
            self.user_write_count += 1
        return user
