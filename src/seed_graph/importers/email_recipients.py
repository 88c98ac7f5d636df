"""
Email recipients: one row per member an email batch was sent to.

Generated per email batch (batch-by-reference mode). For every batch:

1. The eligible pool is the newsletter's subscribers whose subscribe event
   predates the batch's processing start, in subscription order, sliced to
   this batch's window of 1,000 (`batch_index * 1000`).
2. One event timestamp per pool member is synthesized over the two weeks
   after processing (ease-out, negative trend: most activity right after the
   send), capped at the reference time.
3. Each generated row consumes the next event and a random pool member, and
   takes a status by priority: failed, then opened, then delivered, then
   none. Quotas come from the email's aggregate counts minus what earlier
   batches of the same email already used, so totals across all batches never
   exceed the email's counts.

Statuses fill timestamps as follows:
- failed: failed_at = event
- opened: opened_at = event, delivered_at = random instant between
  processing start and the open
- delivered (never opened): delivered_at = event
- none: only processed_at
"""

from __future__ import annotations

import bisect
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

import numpy as np

from ..events import EventQueue, generate_events
from ..store import Row
from .base import TableImporter, index_by, require

BATCH_SIZE = 1000

# Opens and deliveries are spread over this long after processing starts
OPEN_WINDOW = timedelta(days=14)


class EmailStatus(Enum):
    """Outcome of one email send to one member."""

    FAILED = "failed"
    OPENED = "opened"
    DELIVERED = "delivered"
    NONE = "none"


@dataclass
class EmailMeta:
    """
    Status quotas for an email.

    Used both for the residual quota of the batch being generated and for the
    running total an email's batches have consumed so far.
    """

    failed_count: int = 0
    opened_count: int = 0
    delivered_count: int = 0  # Delivered and never opened


class MemberPool:
    """
    Candidate member ids for one batch, drawn without replacement.

    Removal swaps the last id into the removed slot, so each draw is O(1).
    """

    __slots__ = ("_ids",)

    def __init__(self, member_ids: list[str]) -> None:
        self._ids = list(member_ids)

    def __len__(self) -> int:
        return len(self._ids)

    def take(self, index: int) -> str:
        ids = self._ids
        member_id = ids[index]
        ids[index] = ids[-1]
        ids.pop()
        return member_id

    def take_random(self, rng: np.random.Generator) -> str:
        if not self._ids:
            raise IndexError("take from an empty member pool")
        return self.take(int(rng.integers(0, len(self._ids))))


class EmailRecipientsImporter(TableImporter):
    table = "email_recipients"
    dependencies = ["emails", "email_batches", "members", "members_subscribe_events"]

    def import_data(self, quantity: int | None = None) -> int:
        self.emails = index_by(self.store.select(
            "emails",
            ["id", "newsletter_id", "email_count", "delivered_count", "opened_count", "failed_count"],
        ))
        if not self.emails:
            return 0

        self.batches = self.store.select(
            "email_batches", ["id", "email_id", "created_at", "updated_at"], order_by="created_at"
        )
        self.members = index_by(self.store.select("members", ["id", "uuid", "email", "name"]))

        # Position of each batch among the batches of its email
        self.batch_index: dict[str, int] = {}
        seen: dict[str, int] = defaultdict(int)
        for batch in self.batches:
            self.batch_index[batch["id"]] = seen[batch["email_id"]]
            seen[batch["email_id"]] += 1

        # Subscribers per newsletter, in subscription order
        self.subscribers: dict[str, tuple[list[datetime], list[str]]] = defaultdict(lambda: ([], []))
        events = self.store.select(
            "members_subscribe_events",
            ["newsletter_id", "member_id", "subscribed", "created_at"],
            order_by="created_at",
        )
        for event in events:
            if event["subscribed"]:
                times, member_ids = self.subscribers[event["newsletter_id"]]
                times.append(event["created_at"])
                member_ids.append(event["member_id"])

        self.consumed: dict[str, EmailMeta] = defaultdict(EmailMeta)
        self.assigned: dict[str, set[str]] = defaultdict(set)

        per_batch = quantity / len(self.emails) if quantity is not None else BATCH_SIZE
        return self.import_for_each(self.batches, per_batch)

    def eligible_members(self, newsletter_id: str, cutoff: datetime, batch_index: int) -> list[str]:
        """Member ids subscribed before `cutoff`, sliced to the batch's window."""
        times, member_ids = self.subscribers.get(newsletter_id, ([], []))
        before = member_ids[:bisect.bisect_left(times, cutoff)]
        unique = list(dict.fromkeys(before))
        start = batch_index * BATCH_SIZE
        return unique[start:start + BATCH_SIZE]

    def residual_meta(self, email: Row) -> EmailMeta:
        """Quotas left for the next batch of `email`."""
        used = self.consumed[email["id"]]
        return EmailMeta(
            failed_count=max(0, email["failed_count"] - used.failed_count),
            opened_count=max(0, email["opened_count"] - used.opened_count),
            delivered_count=max(
                0, email["delivered_count"] - email["opened_count"] - used.delivered_count
            ),
        )

    def set_referenced_model(self, model: Row) -> None:
        self.batch = model
        self.model = require(self.emails, model["email_id"], "emails")
        email_id = self.model["id"]

        earliest_open = model["updated_at"]
        latest_open = min(self.now, earliest_open + OPEN_WINDOW)
        if latest_open < earliest_open:
            latest_open = earliest_open

        candidates = self.eligible_members(
            self.model["newsletter_id"], earliest_open, self.batch_index[model["id"]]
        )
        assigned = self.assigned[email_id]
        self.member_pool = MemberPool([m for m in candidates if m not in assigned])

        self.events = EventQueue(generate_events(
            total=len(self.member_pool),
            start_time=earliest_open,
            end_time=latest_open,
            shape="ease-out",
            trend="negative",
            rng=self.random.rng,
        ))
        self.email_meta = self.residual_meta(self.model)

    def next_status(self) -> EmailStatus:
        """Consume one unit of the highest-priority quota left."""
        meta = self.email_meta
        used = self.consumed[self.model["id"]]
        if meta.failed_count > 0:
            meta.failed_count -= 1
            used.failed_count += 1
            return EmailStatus.FAILED
        if meta.opened_count > 0:
            meta.opened_count -= 1
            used.opened_count += 1
            return EmailStatus.OPENED
        if meta.delivered_count > 0:
            meta.delivered_count -= 1
            used.delivered_count += 1
            return EmailStatus.DELIVERED
        return EmailStatus.NONE

    def generate(self) -> Row | None:
        timestamp = self.events.pop()
        if timestamp is None:
            return None

        member_id = self.member_pool.take_random(self.random.rng)
        member = require(self.members, member_id, "members")
        self.assigned[self.model["id"]].add(member_id)

        status = self.next_status()
        processed_at = self.batch["updated_at"]

        delivered_at = None
        if status is EmailStatus.OPENED:
            delivered_at = self.random.datetime_between(processed_at, timestamp)
        elif status is EmailStatus.DELIVERED:
            delivered_at = timestamp

        return {
            "id": self.random.object_id(),
            "email_id": self.model["id"],
            "batch_id": self.batch["id"],
            "member_id": member_id,
            "processed_at": processed_at,
            "delivered_at": delivered_at,
            "opened_at": timestamp if status is EmailStatus.OPENED else None,
            "failed_at": timestamp if status is EmailStatus.FAILED else None,
            "member_uuid": member["uuid"],
            "member_email": member["email"],
            "member_name": member["name"],
        }
