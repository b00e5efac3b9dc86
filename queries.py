"""
Data access for clubs and events.

Plain functions, each taking the session to work with as its first
argument. They are the only code that reads or writes the tables. The
unique constraint on clubs.name and the foreign key on events.club_id are
the final guard for races between a pre-check and the write, and their
violations come back as ConflictError and NotFoundError.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Union

from sqlalchemy import select, func, or_
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models
from errors import ConflictError, NotFoundError, ValidationError
from utils import CLUB_NAME_EXISTS
from validation import parse_event_date

logger = logging.getLogger(__name__)

CLUB_COLUMNS = (models.Club.id, models.Club.name, models.Club.description)
EVENT_COLUMNS = (models.Event.id, models.Event.title, models.Event.description, models.Event.event_date)

CLUB_UPDATABLE = {"name", "description"}
EVENT_UPDATABLE = {"title", "description", "event_date"}


def _log_db(statement: str, table: str, **details):
    logger.info("Database %s on %s | %s", statement, table, details)


def _to_storage_date(value: Union[str, datetime]) -> datetime:
    # naive UTC, the way the DateTime columns hold it
    parsed = parse_event_date(value)
    if parsed is None:
        raise ValidationError("event_date", f"Invalid event date: {value!r}")
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)


def _utc_naive_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_unique_violation(error: IntegrityError) -> bool:
    return "unique" in str(error.orig).lower()


# --- CLUBS ---

def list_clubs(db: Session, search_term: Optional[str] = None) -> Sequence[Row]:
    """Clubs newest first, optionally only those whose name or description contains search_term."""
    _log_db("SELECT", "clubs", search=search_term or "all")

    query = select(*CLUB_COLUMNS)

    if search_term:
        # autoescape keeps "_" a literal underscore instead of a LIKE wildcard
        query = query.where(
            or_(
                models.Club.name.contains(search_term, autoescape=True),
                models.Club.description.contains(search_term, autoescape=True)
            )
        )

    query = query.order_by(models.Club.created_at.desc(), models.Club.id.desc())

    clubs = db.execute(query).all()

    _log_db("SELECT_RESULT", "clubs", count=len(clubs))
    return clubs


def get_club(db: Session, club_id: int) -> Optional[models.Club]:
    _log_db("SELECT", "clubs", operation="get_by_id", id=club_id)

    club = db.get(models.Club, club_id)

    _log_db("SELECT_RESULT", "clubs", found=club is not None, id=club_id)
    return club


def find_club_by_name(db: Session, name: str) -> Optional[models.Club]:
    _log_db("SELECT", "clubs", operation="check_name_exists", name=name)

    club = db.execute(select(models.Club).where(models.Club.name == name)).scalars().first()

    _log_db("SELECT_RESULT", "clubs", found=club is not None, name=name)
    return club


def club_exists(db: Session, club_id: int) -> bool:
    _log_db("SELECT", "clubs", operation="check_exists", id=club_id)

    exists = db.execute(
        select(models.Club.id).where(models.Club.id == club_id)
    ).scalar() is not None

    _log_db("SELECT_RESULT", "clubs", exists=exists, id=club_id)
    return exists


def create_club(db: Session, name: str, description: str) -> models.Club:
    _log_db("INSERT", "clubs", name=name)

    club = models.Club(name=name, description=description)

    try:
        db.add(club)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_unique_violation(e):
            logger.warning("Unique constraint rejected club name %r", name)
            raise ConflictError(CLUB_NAME_EXISTS) from e
        raise

    db.refresh(club)

    _log_db("INSERT_RESULT", "clubs", id=club.id, name=club.name)
    return club


def update_club(db: Session, club_id: int, **changes) -> Optional[models.Club]:
    """Updates name and/or description. Returns None when the club doesn't exist."""
    unknown = set(changes) - CLUB_UPDATABLE
    if unknown:
        raise ValueError(f"Cannot update club fields: {sorted(unknown)}")

    _log_db("UPDATE", "clubs", id=club_id, data=changes)

    club = db.get(models.Club, club_id)
    if club is None:
        _log_db("UPDATE_RESULT", "clubs", updated=False, id=club_id)
        return None

    for field, value in changes.items():
        setattr(club, field, value)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_unique_violation(e):
            raise ConflictError(CLUB_NAME_EXISTS) from e
        raise

    db.refresh(club)

    _log_db("UPDATE_RESULT", "clubs", updated=True, id=club_id, name=club.name)
    return club


def delete_club(db: Session, club_id: int) -> bool:
    """Deletes the club and, through the cascade, all of its events."""
    _log_db("DELETE", "clubs", id=club_id)

    club = db.get(models.Club, club_id)
    if club is None:
        _log_db("DELETE_RESULT", "clubs", deleted=False, id=club_id)
        return False

    db.delete(club)
    db.commit()

    _log_db("DELETE_RESULT", "clubs", deleted=True, id=club_id)
    return True


# --- EVENTS ---

def list_events_by_club(db: Session, club_id: int) -> Sequence[Row]:
    _log_db("SELECT", "events", club_id=club_id)

    query = (
        select(*EVENT_COLUMNS)
        .where(models.Event.club_id == club_id)
        .order_by(models.Event.event_date.asc(), models.Event.id.asc())
    )
    events = db.execute(query).all()

    _log_db("SELECT_RESULT", "events", count=len(events), club_id=club_id)
    return events


def get_event(db: Session, event_id: int) -> Optional[models.Event]:
    _log_db("SELECT", "events", operation="get_by_id", id=event_id)

    event = db.get(models.Event, event_id)

    _log_db("SELECT_RESULT", "events", found=event is not None, id=event_id)
    return event


def event_exists(db: Session, event_id: int) -> bool:
    _log_db("SELECT", "events", operation="check_exists", id=event_id)

    exists = db.execute(
        select(models.Event.id).where(models.Event.id == event_id)
    ).scalar() is not None

    _log_db("SELECT_RESULT", "events", exists=exists, id=event_id)
    return exists


def create_event(
    db: Session,
    club_id: int,
    title: str,
    description: str,
    event_date: Union[str, datetime],
) -> models.Event:
    """
    Inserts an event for club_id. Callers check club_exists first; if the
    club vanished in between, the foreign key rejects the row and this
    raises NotFoundError.
    """
    _log_db("INSERT", "events", club_id=club_id, title=title, event_date=event_date)

    db_event = models.Event(
        club_id=club_id,
        title=title,
        description=description,
        event_date=_to_storage_date(event_date),
    )

    try:
        db.add(db_event)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Foreign key rejected event for club %s", club_id)
        raise NotFoundError("Club", club_id) from e

    db.refresh(db_event)

    _log_db("INSERT_RESULT", "events", id=db_event.id, club_id=club_id, title=db_event.title)
    return db_event


def update_event(db: Session, event_id: int, **changes) -> Optional[models.Event]:
    unknown = set(changes) - EVENT_UPDATABLE
    if unknown:
        raise ValueError(f"Cannot update event fields: {sorted(unknown)}")

    _log_db("UPDATE", "events", id=event_id, data=changes)

    db_event = db.get(models.Event, event_id)
    if db_event is None:
        _log_db("UPDATE_RESULT", "events", updated=False, id=event_id)
        return None

    if "event_date" in changes:
        changes["event_date"] = _to_storage_date(changes["event_date"])

    for field, value in changes.items():
        setattr(db_event, field, value)

    db.commit()
    db.refresh(db_event)

    _log_db("UPDATE_RESULT", "events", updated=True, id=event_id, title=db_event.title)
    return db_event


def delete_event(db: Session, event_id: int) -> bool:
    _log_db("DELETE", "events", id=event_id)

    db_event = db.get(models.Event, event_id)
    if db_event is None:
        _log_db("DELETE_RESULT", "events", deleted=False, id=event_id)
        return False

    db.delete(db_event)
    db.commit()

    _log_db("DELETE_RESULT", "events", deleted=True, id=event_id)
    return True


def list_events_by_club_paginated(db: Session, club_id: int, limit: int = 10, offset: int = 0) -> dict:
    _log_db("SELECT", "events", club_id=club_id, limit=limit, offset=offset)

    total = db.execute(
        select(func.count()).select_from(models.Event).where(models.Event.club_id == club_id)
    ).scalar_one()

    events = db.execute(
        select(*EVENT_COLUMNS)
        .where(models.Event.club_id == club_id)
        .order_by(models.Event.event_date.asc(), models.Event.id.asc())
        .limit(limit)
        .offset(offset)
    ).all()

    _log_db("SELECT_RESULT", "events", count=len(events), total=total, club_id=club_id)

    return {
        "events": events,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + len(events) < total,
        },
    }


def list_upcoming_events(
    db: Session,
    club_id: int,
    days: int = 30,
    now: Optional[datetime] = None,
) -> Sequence[Row]:
    """Events of the club dated between now and now + days, both ends included."""
    start = _to_storage_date(now) if now is not None else _utc_naive_now()
    end = start + timedelta(days=days)

    _log_db("SELECT", "events", club_id=club_id, operation="upcoming", days=days,
            date_from=start.isoformat(), date_to=end.isoformat())

    events = db.execute(
        select(*EVENT_COLUMNS)
        .where(models.Event.club_id == club_id)
        .where(models.Event.event_date.between(start, end))
        .order_by(models.Event.event_date.asc(), models.Event.id.asc())
    ).all()

    _log_db("SELECT_RESULT", "events", count=len(events), club_id=club_id, days=days)
    return events
