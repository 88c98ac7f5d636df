"""
Newsletter emails and their send batches.

Tables:
- emails (one per published post that went out with a newsletter)
- email_batches (one per 1,000 recipients of an email)

Key patterns:
- email_count is the newsletter's subscriber count when the post was published
- 0-1% of sends fail; 30-60% of delivered emails are opened
- Batches of one email are queued a minute apart, in creation order
"""

from __future__ import annotations

import bisect
import math
from collections import defaultdict
from datetime import timedelta

from ..store import Row
from .base import TableImporter

BATCH_SIZE = 1000


class EmailsImporter(TableImporter):
    table = "emails"
    dependencies = ["members_subscribe_events"]

    def import_data(self, quantity: int | None = None) -> int:
        # Subscription times per newsletter, sorted for bisecting
        self.subscribed_at: dict[str, list] = defaultdict(list)
        events = self.store.select(
            "members_subscribe_events", ["newsletter_id", "subscribed", "created_at"], order_by="created_at"
        )
        for event in events:
            if event["subscribed"]:
                self.subscribed_at[event["newsletter_id"]].append(event["created_at"])

        posts = [
            post
            for post in self.store.select(
                "posts", ["id", "title", "status", "newsletter_id", "published_at"], order_by="published_at"
            )
            if post["status"] == "published" and post["newsletter_id"] is not None
        ]
        if quantity is not None:
            posts = posts[:quantity]
        return self.import_for_each(posts, 1)

    def generate(self) -> Row | None:
        post = self.model
        published_at = post["published_at"]
        email_count = bisect.bisect_left(self.subscribed_at[post["newsletter_id"]], published_at)
        if email_count == 0:
            return None

        failed_count = int(round(email_count * self.random.rng.uniform(0.0, 0.01)))
        delivered_count = email_count - failed_count
        opened_count = int(round(delivered_count * self.random.rng.uniform(0.3, 0.6)))

        return {
            "id": self.random.object_id(),
            "post_id": post["id"],
            "newsletter_id": post["newsletter_id"],
            "uuid": self.random.uuid(),
            "status": "submitted",
            "recipient_filter": "all",
            "subject": post["title"],
            "email_count": email_count,
            "delivered_count": delivered_count,
            "opened_count": opened_count,
            "failed_count": failed_count,
            "submitted_at": published_at,
            "created_at": published_at,
            "updated_at": published_at,
        }


class EmailBatchesImporter(TableImporter):
    table = "email_batches"
    dependencies = ["emails"]

    def import_data(self, quantity: int | None = None) -> int:
        emails = self.store.select("emails", ["id", "email_count", "submitted_at"], order_by="submitted_at")
        return self.import_for_each(emails, lambda email: self._batch_count(email, quantity))

    @staticmethod
    def _batch_count(email: Row, cap: int | None) -> int:
        count = max(1, math.ceil(email["email_count"] / BATCH_SIZE))
        return min(count, cap) if cap is not None else count

    def set_referenced_model(self, model: Row) -> None:
        super().set_referenced_model(model)
        self._index = 0

    def generate(self) -> Row | None:
        email = self.model
        created_at = email["submitted_at"] + timedelta(minutes=self._index)
        self._index += 1
        return {
            "id": self.random.object_id(),
            "email_id": email["id"],
            "provider_id": f"<{self.random.random_bytes(8).hex()}@mg.example.com>",
            "status": "submitted",
            "member_segment": None,
            "created_at": created_at,
            # Processing starts shortly after the batch is queued
            "updated_at": created_at + timedelta(seconds=self.random.integer(1, 30)),
        }
