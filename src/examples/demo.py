"""
demo.py – One-shot showcase of versionic on SQLite.

Assumes:
  • versionic installed (aiosqlite is a core dependency)
  • an in-memory SQLite database, gone when the script exits
"""

import asyncio
from datetime import timedelta
from pprint import pprint
from typing import ClassVar

from sqlalchemy import Column, String, Text

from versionic import (
    Settings,
    SqlStore,
    UniqueConflictError,
    VersionedRecord,
    VersionedRepository,
    init_versionic,
    on,
    versioned_table,
)
from versionic.persistence.models import metadata

# ────────────────────────────────── 1. Table + Record ─────────────────────────────────
stories = versioned_table(
    "stories",
    metadata,
    Column("slug", String(120), nullable=True),
    Column("title", String(200), nullable=True),
    Column("body", Text, nullable=True),
)


class Story(VersionedRecord):
    slug: str | None = None
    title: str | None = None
    body: str | None = None

    unique_fields: ClassVar[tuple[str, ...]] = ("slug",)

    def _format_story(self) -> str:
        return f"\nTitle: {self.title}\n\n  {self.body}\n\n"


# Event handlers using @on decorators
@on.create(Story)
def log_new_story(story: Story):
    print(f"\n🆕 New story created: {story.id}")
    print(f"   Title: {story.title}")


@on.update(Story)
def log_updated_story(story: Story):
    print(f"\n✏️  Story {story.id} now at version {story.version_id}")
    print(f"   Title: {story.title}")


# ────────────────────────────────── 2. Flow that drives everything ─────────────────────
async def end_to_end_demo() -> dict:
    db = await init_versionic(
        Settings(database_url="sqlite+aiosqlite:///:memory:", log_format="text")
    )
    repo = VersionedRepository(SqlStore(db, stories, Story))

    s0 = await repo.create({"slug": "eventide", "title": "Draft title"})
    await repo.update_by_id(s0.id, {"body": "Once upon a time…"})
    middle = await repo.find_by_id(s0.id)
    await repo.update_by_id(s0.id, {"title": "Final title"})

    try:
        await repo.create({"slug": "eventide", "title": "Copycat"})
    except UniqueConflictError as exc:
        print(f"\n✗ {exc}")

    versions = await repo.find({"id": s0.id}, history=True)
    as_of_middle = await repo.find_by_id(
        s0.id, max_date=middle.valid_from + timedelta(microseconds=1),
    )
    latest = await repo.find_by_id(s0.id)
    await db.dispose()
    return {
        "id": s0.id,
        "versions": len(versions),
        "title_now": latest.title,
        "title_then": as_of_middle.title,
        "story": latest._format_story(),
    }


def main():
    result = asyncio.run(end_to_end_demo())
    print("\nResult:")
    pprint(result, width=80)


if __name__ == "__main__":
    main()
