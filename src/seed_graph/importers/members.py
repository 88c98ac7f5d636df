"""
Members and their newsletter subscriptions.

Tables:
- labels (~10)
- members (~1,000, signed up uniformly over the last two years)
- members_labels (~20% of members carry 1-2 labels)
- members_newsletters (current subscriptions)
- members_subscribe_events (one subscribe event per subscription)

Key patterns:
- Members subscribe to signup newsletters at 85%, to the others at 30%
- Subscribe events are dated at the member's signup, so a member is eligible
  for every email sent after they joined
- members.finalise() rolls email_recipients up into the member's email
  counters once emails exist
"""

from __future__ import annotations

from collections import Counter
from datetime import timedelta

from ..store import Row
from .base import TableImporter, index_by, require, slugify

LABEL_NAMES = [
    "VIP", "Imported", "Beta tester", "Press", "Partner",
    "Event attendee", "Churn risk", "Founding member", "Staff", "Podcast",
]

MEMBER_STATUSES = ["free", "paid", "comped"]
MEMBER_STATUS_WEIGHTS = [70, 25, 5]

# Members need this many tracked emails before an open rate is shown
MIN_EMAILS_FOR_OPEN_RATE = 5


class LabelsImporter(TableImporter):
    table = "labels"
    default_quantity = 10

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._index = 0

    def generate(self) -> Row | None:
        index = self._index
        self._index += 1
        name = LABEL_NAMES[index % len(LABEL_NAMES)]
        if index >= len(LABEL_NAMES):
            name = f"{name} {index // len(LABEL_NAMES) + 1}"
        created_at = self.random.datetime_between(self.now - timedelta(days=730), self.now)
        return {
            "id": self.random.object_id(),
            "name": name,
            "slug": slugify(name),
            "created_at": created_at,
            "updated_at": created_at,
        }


class MembersImporter(TableImporter):
    table = "members"
    default_quantity = 1000

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._count = 0

    def generate(self) -> Row | None:
        self._count += 1
        first_name = self.fake.first_name()
        last_name = self.fake.last_name()
        created_at = self.random.datetime_between(self.now - timedelta(days=730), self.now)
        return {
            "id": self.random.object_id(),
            "uuid": self.random.uuid(),
            "transient_id": self.random.uuid(),
            # Counter suffix keeps addresses unique
            "email": f"{first_name}.{last_name}{self._count}@example.com".lower(),
            "name": f"{first_name} {last_name}",
            "status": self.random.weighted_choice(MEMBER_STATUSES, MEMBER_STATUS_WEIGHTS),
            "email_disabled": False,
            "email_count": 0,
            "email_opened_count": 0,
            "email_open_rate": None,
            "created_at": created_at,
            "updated_at": created_at,
        }

    def finalise(self) -> None:
        """Roll email_recipients up into members' email counters."""
        recipients = self.store.select("email_recipients", ["member_id", "opened_at"])
        if not recipients:
            return

        sent = Counter(r["member_id"] for r in recipients)
        opened = Counter(r["member_id"] for r in recipients if r["opened_at"] is not None)

        updates = []
        for member_id, email_count in sent.items():
            opened_count = opened.get(member_id, 0)
            open_rate = None
            if email_count >= MIN_EMAILS_FOR_OPEN_RATE:
                open_rate = round(opened_count / email_count * 100)
            updates.append({
                "id": member_id,
                "email_count": email_count,
                "email_opened_count": opened_count,
                "email_open_rate": open_rate,
            })
        self.store.update("members", updates)


class MembersLabelsImporter(TableImporter):
    table = "members_labels"

    def import_data(self, quantity: int | None = None) -> int:
        self.label_ids = [label["id"] for label in self.store.select("labels", ["id"])]
        if not self.label_ids:
            return 0
        members = self.store.select("members", ["id"])
        return self.import_for_each(members, quantity if quantity is not None else 2)

    def set_referenced_model(self, model: Row) -> None:
        super().set_referenced_model(model)
        count = self.random.integer(1, 2) if self.random.chance(0.2) else 0
        self._pending = self.random.sample(self.label_ids, count)
        self._sort_order = 0

    def generate(self) -> Row | None:
        if not self._pending:
            return None
        row = {
            "id": self.random.object_id(),
            "member_id": self.model["id"],
            "label_id": self._pending.pop(0),
            "sort_order": self._sort_order,
        }
        self._sort_order += 1
        return row


class MembersNewslettersImporter(TableImporter):
    table = "members_newsletters"

    def import_data(self, quantity: int | None = None) -> int:
        self.newsletters = self.store.select(
            "newsletters", ["id", "subscribe_on_signup"], order_by="sort_order"
        )
        if not self.newsletters:
            return 0
        members = self.store.select("members", ["id", "email_disabled"])
        return self.import_for_each(members, quantity if quantity is not None else len(self.newsletters))

    def set_referenced_model(self, model: Row) -> None:
        super().set_referenced_model(model)
        self._pending = []
        if model.get("email_disabled"):
            return
        for newsletter in self.newsletters:
            probability = 0.85 if newsletter["subscribe_on_signup"] else 0.3
            if self.random.chance(probability):
                self._pending.append(newsletter["id"])

    def generate(self) -> Row | None:
        if not self._pending:
            return None
        return {
            "id": self.random.object_id(),
            "member_id": self.model["id"],
            "newsletter_id": self._pending.pop(0),
        }


class MembersSubscribeEventsImporter(TableImporter):
    """One subscribe event per current subscription, dated at signup."""

    table = "members_subscribe_events"
    dependencies = ["members_newsletters"]

    def import_data(self, quantity: int | None = None) -> int:
        self.members = index_by(self.store.select("members", ["id", "created_at"]))
        subscriptions = self.store.select("members_newsletters", ["member_id", "newsletter_id"])
        if quantity is not None:
            subscriptions = subscriptions[:quantity]
        return self.import_for_each(subscriptions, 1)

    def generate(self) -> Row | None:
        member = require(self.members, self.model["member_id"], "members")
        return {
            "id": self.random.object_id(),
            "member_id": member["id"],
            "newsletter_id": self.model["newsletter_id"],
            "subscribed": True,
            "source": "member",
            "created_at": member["created_at"],
        }
