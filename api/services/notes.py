"""
Reviewer notes and tags on applications.

Notes belong to their author: only the author edits a note, while HR may
also remove one. Tag names are unique per application, compared without
regard to case.
"""

from typing import Any, Optional
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AuthorizationError, ConflictError
from core.middleware.authorization import CallerContext, StaffRole
from core.utils.datetime import isoformat, now
from database.models.applications import Application, ApplicationActivityType
from database.models.notes import ApplicationNote, ApplicationTag
from database.repository import get_or_404
from recruitment import evaluation

from api.services.applications import load_application, record_activity

logger = logging.getLogger(__name__)

MODERATOR_ROLES = frozenset({StaffRole.HR, StaffRole.SUPERADMIN})


def serialize_note(note: ApplicationNote) -> dict[str, Any]:
    return {
        "id": note.id,
        "application_id": note.application_id,
        "author_id": note.author_id,
        "content": note.content,
        "is_internal": note.is_internal,
        "created_at": isoformat(note.created_at),
        "updated_at": isoformat(note.updated_at),
    }


def serialize_tag(tag: ApplicationTag) -> dict[str, Any]:
    return {
        "id": tag.id,
        "application_id": tag.application_id,
        "name": tag.name,
        "color": tag.color,
        "category": tag.category,
        "added_by": tag.added_by,
        "added_at": isoformat(tag.added_at),
    }


async def _touch(session: AsyncSession, application_id: int) -> None:
    await session.execute(
        update(Application)
        .where(Application.id == application_id)
        .values(last_activity_at=now())
    )


# ==================== Notes ==================== #

async def add_note(
    session: AsyncSession,
    application_id: int,
    content: str,
    caller: CallerContext,
    is_internal: bool = True,
) -> dict[str, Any]:
    """
    Attach a note to an application.

    The activity trail gets the first hundred characters of the note.

    Raises:
        ValidationError: If the content is blank
        NotFoundError: If the application does not exist
    """
    content = evaluation.require_content(content)
    await load_application(session, application_id)

    note = ApplicationNote(
        application_id=application_id,
        author_id=caller.user_id,
        content=content,
        is_internal=is_internal,
    )
    session.add(note)
    await session.flush()

    await _touch(session, application_id)
    record_activity(
        session,
        application_id,
        ApplicationActivityType.NOTE_ADDED,
        "Note added",
        {"note_id": note.id, "preview": evaluation.note_preview(content)},
        caller,
    )
    await session.commit()
    return serialize_note(note)


async def list_notes(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    """Notes of an application, newest first."""
    await load_application(session, application_id)
    result = await session.execute(
        select(ApplicationNote)
        .where(ApplicationNote.application_id == application_id)
        .order_by(ApplicationNote.created_at.desc(), ApplicationNote.id.desc())
    )
    return [serialize_note(n) for n in result.scalars().all()]


async def update_note(
    session: AsyncSession, note_id: int, content: str, caller: CallerContext
) -> dict[str, Any]:
    content = evaluation.require_content(content)
    note = await get_or_404(session, ApplicationNote, note_id, "Note")
    if note.author_id != caller.user_id:
        raise AuthorizationError(
            "Only the author can edit a note", {"note_id": note_id, "author_id": note.author_id}
        )

    note.content = content
    note.updated_at = now()
    await session.commit()
    return serialize_note(note)


async def delete_note(
    session: AsyncSession, note_id: int, caller: CallerContext
) -> dict[str, Any]:
    note = await get_or_404(session, ApplicationNote, note_id, "Note")
    if note.author_id != caller.user_id and caller.role not in MODERATOR_ROLES:
        raise AuthorizationError(
            "Only the author or HR can delete a note", {"note_id": note_id}
        )

    await session.execute(delete(ApplicationNote).where(ApplicationNote.id == note_id))
    session.expunge(note)
    await session.commit()
    logger.info(
        f"Note {note_id} deleted by {caller.user_id}",
        extra={"application_id": note.application_id},
    )
    return {"id": note_id, "deleted": True}


# ==================== Tags ==================== #

async def add_tag(
    session: AsyncSession,
    application_id: int,
    name: str,
    color: Optional[str] = None,
    category: Optional[str] = None,
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Tag an application.

    Args:
        session: Database session
        application_id: Application to tag
        name: Tag label, whitespace collapsed
        color: Hex color (default #10B981)
        category: Free-form grouping (default "custom")
        caller: Staff member adding the tag

    Returns:
        The stored tag

    Raises:
        ValidationError: If the name or color is malformed
        NotFoundError: If the application does not exist
        ConflictError: If the application already carries the tag
    """
    name = evaluation.normalize_tag(name)
    color = evaluation.check_color(color)
    await load_application(session, application_id)

    existing = await session.execute(
        select(ApplicationTag).where(
            ApplicationTag.application_id == application_id,
            func.lower(ApplicationTag.name) == name.lower(),
        )
    )
    found = existing.scalar_one_or_none()
    if found is not None:
        raise ConflictError(
            f"Application already tagged {found.name}",
            {"tag_id": found.id, "name": found.name},
        )

    tag = ApplicationTag(
        application_id=application_id,
        name=name,
        color=color,
        category=(category or "").strip() or evaluation.DEFAULT_TAG_CATEGORY,
        added_by=caller.user_id if caller else None,
    )
    session.add(tag)
    await session.flush()

    await _touch(session, application_id)
    record_activity(
        session,
        application_id,
        ApplicationActivityType.TAG_ADDED,
        f"Tagged {name}",
        {"tag_id": tag.id, "name": name},
        caller,
    )
    await session.commit()
    return serialize_tag(tag)


async def list_tags(session: AsyncSession, application_id: int) -> list[dict[str, Any]]:
    await load_application(session, application_id)
    result = await session.execute(
        select(ApplicationTag)
        .where(ApplicationTag.application_id == application_id)
        .order_by(ApplicationTag.added_at, ApplicationTag.id)
    )
    return [serialize_tag(t) for t in result.scalars().all()]


async def remove_tag(
    session: AsyncSession, tag_id: int, caller: Optional[CallerContext] = None
) -> dict[str, Any]:
    tag = await get_or_404(session, ApplicationTag, tag_id, "Tag")
    application_id, name = tag.application_id, tag.name

    await session.execute(delete(ApplicationTag).where(ApplicationTag.id == tag_id))
    session.expunge(tag)
    record_activity(
        session,
        application_id,
        ApplicationActivityType.TAG_REMOVED,
        f"Tag {name} removed",
        {"tag_id": tag_id, "name": name},
        caller,
    )
    await session.commit()
    return {"id": tag_id, "deleted": True}
