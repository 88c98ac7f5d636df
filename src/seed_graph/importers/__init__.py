"""
Table importers, one per generated table.

IMPORTERS maps table name -> importer class. The generator dispatches on the
table name; dependency order comes from seed_graph.dependencies, so the
registry order only matters as the default request order.

Groups:
- users: roles, users, roles_users
- content: newsletters, tags, posts, posts_tags, posts_authors, products
- members: labels, members, members_labels, members_newsletters,
  members_subscribe_events
- emails: emails, email_batches
- email_recipients: email_recipients
"""

from ..errors import UnknownTableError
from .base import TableImporter
from .content import (
    NewslettersImporter,
    PostsAuthorsImporter,
    PostsImporter,
    PostsTagsImporter,
    ProductsImporter,
    TagsImporter,
)
from .email_recipients import EmailMeta, EmailRecipientsImporter, EmailStatus, MemberPool
from .emails import EmailBatchesImporter, EmailsImporter
from .members import (
    LabelsImporter,
    MembersImporter,
    MembersLabelsImporter,
    MembersNewslettersImporter,
    MembersSubscribeEventsImporter,
)
from .users import RolesImporter, RolesUsersImporter, UsersImporter

IMPORTERS: dict[str, type[TableImporter]] = {
    importer.table: importer
    for importer in [
        RolesImporter,
        UsersImporter,
        RolesUsersImporter,
        NewslettersImporter,
        TagsImporter,
        PostsImporter,
        PostsTagsImporter,
        PostsAuthorsImporter,
        ProductsImporter,
        LabelsImporter,
        MembersImporter,
        MembersLabelsImporter,
        MembersNewslettersImporter,
        MembersSubscribeEventsImporter,
        EmailsImporter,
        EmailBatchesImporter,
        EmailRecipientsImporter,
    ]
}


def get_importer(table: str) -> type[TableImporter]:
    """
    Look up the importer class for a table.

    Raises:
        UnknownTableError: If no importer is registered for `table`
    """
    try:
        return IMPORTERS[table]
    except KeyError:
        raise UnknownTableError(table) from None


__all__ = [
    "IMPORTERS",
    "get_importer",
    "TableImporter",
    "EmailMeta",
    "EmailStatus",
    "MemberPool",
    "RolesImporter",
    "UsersImporter",
    "RolesUsersImporter",
    "NewslettersImporter",
    "TagsImporter",
    "PostsImporter",
    "PostsTagsImporter",
    "PostsAuthorsImporter",
    "ProductsImporter",
    "LabelsImporter",
    "MembersImporter",
    "MembersLabelsImporter",
    "MembersNewslettersImporter",
    "MembersSubscribeEventsImporter",
    "EmailsImporter",
    "EmailBatchesImporter",
    "EmailRecipientsImporter",
]
