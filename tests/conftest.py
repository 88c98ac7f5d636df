"""
Shared pytest fixtures.

Provides:
- A fixed reference time so generated timestamps are reproducible
- An empty in-memory store
- The bundled schema
- A seeded RandomSource
- Factories for small email scenarios (members, subscriptions, emails, batches)
"""

from datetime import datetime, timedelta

import pytest

from seed_graph.importers.base import TableImporter
from seed_graph.randomness import RandomSource
from seed_graph.schema import load_schema
from seed_graph.store import MemoryStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture(scope="session")
def schema():
    return load_schema()


@pytest.fixture
def random_source() -> RandomSource:
    return RandomSource(seed=42)


def make_importer(name: str, deps=()) -> type[TableImporter]:
    """Build a do-nothing importer class for registry-level tests."""
    return type(
        f"{name.title().replace('_', '')}Importer",
        (TableImporter,),
        {"table": name, "dependencies": list(deps), "generate": lambda self: None},
    )


def build_email_scenario(
    member_count: int,
    delivered_count: int,
    opened_count: int,
    failed_count: int,
    batch_count: int,
    batch_spacing: timedelta = timedelta(days=1),
) -> MemoryStore:
    """
    Store with one newsletter, `member_count` subscribers and one email.

    Every member subscribes before the first batch starts; batches of the
    email start `batch_spacing` apart.
    """
    first_batch = FIXED_NOW - timedelta(days=30)
    signup_start = first_batch - timedelta(days=365)

    members = []
    events = []
    for i in range(member_count):
        member_id = f"m{i:05d}"
        members.append({
            "id": member_id,
            "uuid": f"uuid-{i}",
            "email": f"member{i}@example.com",
            "name": f"Member {i}",
            "created_at": signup_start + timedelta(minutes=i),
        })
        events.append({
            "id": f"se{i:05d}",
            "member_id": member_id,
            "newsletter_id": "n1",
            "subscribed": True,
            "source": "member",
            "created_at": signup_start + timedelta(minutes=i),
        })

    email = {
        "id": "e1",
        "newsletter_id": "n1",
        "email_count": delivered_count + failed_count,
        "delivered_count": delivered_count,
        "opened_count": opened_count,
        "failed_count": failed_count,
        "submitted_at": first_batch,
    }
    batches = [
        {
            "id": f"b{i}",
            "email_id": "e1",
            "created_at": first_batch + batch_spacing * i,
            "updated_at": first_batch + batch_spacing * i,
        }
        for i in range(batch_count)
    ]

    return MemoryStore({
        "newsletters": [{"id": "n1", "subscribe_on_signup": True, "sort_order": 0}],
        "members": members,
        "members_subscribe_events": events,
        "emails": [email],
        "email_batches": batches,
    })
