"""
Site content: newsletters, tags, posts and products.

Tables:
- newsletters (~2)
- tags (~10)
- posts (~50, ~90% published over the last two years)
- posts_tags (0-3 tags per post)
- posts_authors (1-2 authors per post)
- products (free tier plus two paid tiers)

Published posts are attached to a newsletter about 70% of the time; those are
the posts that later get an email.
"""

from __future__ import annotations

from datetime import timedelta

from ..store import Row
from .base import TableImporter, slugify

NEWSLETTER_NAMES = ["Weekly Roundup", "Product Updates", "Deep Dives", "Community Digest"]

PRODUCTS = [
    # (name, type, monthly_price, yearly_price) in cents
    ("Free", "free", None, None),
    ("Supporter", "paid", 500, 5000),
    ("Insider", "paid", 1200, 12000),
]

POST_VISIBILITIES = ["public", "members", "paid"]
POST_VISIBILITY_WEIGHTS = [60, 30, 10]


class NewslettersImporter(TableImporter):
    table = "newsletters"
    default_quantity = 2

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._index = 0

    def generate(self) -> Row | None:
        index = self._index
        self._index += 1
        name = NEWSLETTER_NAMES[index % len(NEWSLETTER_NAMES)]
        if index >= len(NEWSLETTER_NAMES):
            name = f"{name} {index // len(NEWSLETTER_NAMES) + 1}"
        created_at = self.now - timedelta(days=1095)
        return {
            "id": self.random.object_id(),
            "uuid": self.random.uuid(),
            "name": name,
            "slug": slugify(name),
            "status": "active",
            "sender_email": None,
            # The first newsletter is the default signup newsletter
            "subscribe_on_signup": index == 0 or self.random.chance(0.5),
            "sort_order": index,
            "created_at": created_at,
            "updated_at": created_at,
        }


class TagsImporter(TableImporter):
    table = "tags"
    default_quantity = 10

    def generate(self) -> Row | None:
        name = self.fake.word().title()
        created_at = self.random.datetime_between(self.now - timedelta(days=1095), self.now)
        return {
            "id": self.random.object_id(),
            "name": name,
            "slug": f"{slugify(name)}-{self.random.integer(100, 999)}",
            "description": self.fake.sentence(),
            "visibility": "public",
            "created_at": created_at,
            "updated_at": created_at,
        }


class PostsImporter(TableImporter):
    table = "posts"
    default_quantity = 50

    def import_data(self, quantity: int | None = None) -> int:
        self.user_ids = [u["id"] for u in self.store.select("users", ["id"])]
        self.newsletter_ids = [n["id"] for n in self.store.select("newsletters", ["id"], order_by="sort_order")]
        return super().import_data(quantity)

    def generate(self) -> Row | None:
        title = self.fake.sentence(nb_words=6).rstrip(".")
        published = self.random.chance(0.9)

        if published:
            published_at = self.random.datetime_between(self.now - timedelta(days=730), self.now)
            created_at = published_at - timedelta(hours=self.random.integer(1, 72))
        else:
            published_at = None
            created_at = self.random.datetime_between(self.now - timedelta(days=60), self.now)

        newsletter_id = None
        if published and self.newsletter_ids and self.random.chance(0.7):
            newsletter_id = self.random.choice(self.newsletter_ids)

        paragraphs = self.fake.paragraphs(nb=self.random.integer(3, 8))
        return {
            "id": self.random.object_id(),
            "uuid": self.random.uuid(),
            "title": title,
            "slug": f"{slugify(title)}-{self.random.integer(1000, 9999)}",
            "html": "".join(f"<p>{p}</p>" for p in paragraphs),
            "status": "published" if published else "draft",
            "visibility": self.random.weighted_choice(POST_VISIBILITIES, POST_VISIBILITY_WEIGHTS),
            "newsletter_id": newsletter_id,
            "created_by": self.random.choice(self.user_ids) if self.user_ids else None,
            "published_at": published_at,
            "created_at": created_at,
            "updated_at": published_at or created_at,
        }


class PostsTagsImporter(TableImporter):
    table = "posts_tags"

    def import_data(self, quantity: int | None = None) -> int:
        self.tag_ids = [t["id"] for t in self.store.select("tags", ["id"])]
        if not self.tag_ids:
            return 0
        posts = self.store.select("posts", ["id"])
        return self.import_for_each(posts, quantity if quantity is not None else 3)

    def set_referenced_model(self, model: Row) -> None:
        super().set_referenced_model(model)
        self._pending = self.random.sample(self.tag_ids, self.random.integer(0, 3))
        self._sort_order = 0

    def generate(self) -> Row | None:
        if not self._pending:
            return None
        row = {
            "id": self.random.object_id(),
            "post_id": self.model["id"],
            "tag_id": self._pending.pop(0),
            "sort_order": self._sort_order,
        }
        self._sort_order += 1
        return row


class PostsAuthorsImporter(TableImporter):
    table = "posts_authors"

    def import_data(self, quantity: int | None = None) -> int:
        self.user_ids = [u["id"] for u in self.store.select("users", ["id"])]
        if not self.user_ids:
            return 0
        posts = self.store.select("posts", ["id", "created_by"])
        return self.import_for_each(posts, quantity if quantity is not None else 2)

    def set_referenced_model(self, model: Row) -> None:
        super().set_referenced_model(model)
        primary = model.get("created_by") or self.random.choice(self.user_ids)
        self._pending = [primary]
        others = [u for u in self.user_ids if u != primary]
        if others and self.random.chance(0.1):
            self._pending.append(self.random.choice(others))
        self._sort_order = 0

    def generate(self) -> Row | None:
        if not self._pending:
            return None
        row = {
            "id": self.random.object_id(),
            "post_id": self.model["id"],
            "author_id": self._pending.pop(0),
            "sort_order": self._sort_order,
        }
        self._sort_order += 1
        return row


class ProductsImporter(TableImporter):
    table = "products"
    default_quantity = len(PRODUCTS)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._index = 0

    def generate(self) -> Row | None:
        if self._index >= len(PRODUCTS):
            return None
        name, product_type, monthly, yearly = PRODUCTS[self._index]
        self._index += 1
        created_at = self.now - timedelta(days=1095)
        return {
            "id": self.random.object_id(),
            "name": name,
            "slug": slugify(name),
            "type": product_type,
            "active": True,
            "monthly_price": monthly,
            "yearly_price": yearly,
            "currency": "usd" if product_type == "paid" else None,
            "created_at": created_at,
            "updated_at": created_at,
        }
