"""
Staff users and roles.

Tables:
- roles (fixed set)
- users (~8)
- roles_users (one role per user)
"""

from __future__ import annotations

from datetime import timedelta

from ..store import Row
from .base import TableImporter, slugify

ROLES = [
    ("Administrator", "Administrators"),
    ("Editor", "Editors"),
    ("Author", "Authors"),
    ("Contributor", "Contributors"),
    ("Owner", "Blog Owner"),
]

# Owner is only ever the pre-existing admin account
ASSIGNABLE_ROLES = ["Administrator", "Editor", "Author", "Contributor"]
ASSIGNABLE_ROLE_WEIGHTS = [1, 3, 5, 2]

# bcrypt hash of "password", shared by every generated staff user
PASSWORD_HASH = "$2a$10$6I4h6GRyMxh1XCHlqMpxhOqZCz4ET9YxJlFcUXFvXh2wqhOhj8Ppi"


class RolesImporter(TableImporter):
    table = "roles"
    default_quantity = len(ROLES)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._index = 0

    def generate(self) -> Row | None:
        if self._index >= len(ROLES):
            return None
        name, description = ROLES[self._index]
        self._index += 1
        created_at = self.now - timedelta(days=1095)
        return {
            "id": self.random.object_id(),
            "name": name,
            "description": description,
            "created_at": created_at,
            "updated_at": created_at,
        }


class UsersImporter(TableImporter):
    table = "users"
    default_quantity = 8

    def generate(self) -> Row | None:
        name = self.fake.name()
        slug = slugify(name)
        created_at = self.random.datetime_between(
            self.now - timedelta(days=1095), self.now - timedelta(days=730)
        )
        return {
            "id": self.random.object_id(),
            "name": name,
            "slug": slug,
            "email": f"{slug}@example.com",
            "password": PASSWORD_HASH,
            "status": "active",
            "created_at": created_at,
            "updated_at": created_at,
        }


class RolesUsersImporter(TableImporter):
    """Assigns one role to every user that does not have one yet."""

    table = "roles_users"

    def import_data(self, quantity: int | None = None) -> int:
        roles = {role["name"]: role["id"] for role in self.store.select("roles", ["id", "name"])}
        self.role_ids = [roles[name] for name in ASSIGNABLE_ROLES if name in roles]
        if not self.role_ids:
            return 0
        self.role_weights = [
            weight for name, weight in zip(ASSIGNABLE_ROLES, ASSIGNABLE_ROLE_WEIGHTS) if name in roles
        ]

        assigned = {row["user_id"] for row in self.store.select("roles_users", ["user_id"])}
        users = [u for u in self.store.select("users", ["id"]) if u["id"] not in assigned]
        return self.import_for_each(users, 1)

    def generate(self) -> Row | None:
        return {
            "id": self.random.object_id(),
            "role_id": self.random.weighted_choice(self.role_ids, self.role_weights),
            "user_id": self.model["id"],
        }
