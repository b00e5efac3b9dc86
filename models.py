from sqlalchemy import String, ForeignKey, Text, DateTime, Integer
from sqlalchemy.orm import relationship, Mapped, mapped_column
from database import Base
from typing import List
import datetime


def utcnow() -> datetime.datetime:
    # stored naive, always UTC
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Club(Base):
    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    events: Mapped[List["Event"]] = relationship(
        "Event",
        back_populates="club",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self):
        return f"<Club id={self.id} name={self.name!r}>"


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clubs.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Content
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    event_date: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, index=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    club: Mapped["Club"] = relationship("Club", back_populates="events")

    def __repr__(self):
        return f"<Event id={self.id} club_id={self.club_id} title={self.title!r}>"
