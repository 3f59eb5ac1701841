from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, List, Optional

from sqlalchemy import Date, DateTime, Integer, String, Text, create_engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import TransportError
from .model import UNKNOWN_DEADLINE, Opportunity, Profile

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "email", "skills", "career_interest", "cv_text")


class Base(DeclarativeBase):
    pass


class StudentRow(Base):
    __tablename__ = "student"

    discord_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[str | None] = mapped_column(Text, nullable=True)
    career_interest: Mapped[str | None] = mapped_column(Text, nullable=True)
    cv_text: Mapped[str | None] = mapped_column(Text, nullable=True)


class OpportunityRow(Base):
    __tablename__ = "opportunities"

    # (discord_id, opportunity_id) is intentionally not unique; inserts check existence first.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    opportunity_id: Mapped[str] = mapped_column(String(64), index=True)
    discord_id: Mapped[str] = mapped_column(String(64), index=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    application_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    wage: Mapped[str | None] = mapped_column(Text, nullable=True)
    home_office: Mapped[str | None] = mapped_column(Text, nullable=True)
    benefits: Mapped[str | None] = mapped_column(Text, nullable=True)
    formal_requirements: Mapped[str | None] = mapped_column(Text, nullable=True)
    technical_requirements: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_person: Mapped[str | None] = mapped_column(Text, nullable=True)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)


class FeedbackRow(Base):
    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_id: Mapped[str] = mapped_column(String(64), index=True)
    feedback_text: Mapped[str] = mapped_column(Text)
    stars: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Database:
    """Engine and session factory shared by the stores."""

    def __init__(self, url: str, echo: bool = False):
        kwargs = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty in-memory database
            kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
        self.engine = create_engine(url, echo=echo, future=True, **kwargs)
        self.session_factory = sessionmaker(bind=self.engine, class_=Session, autoflush=False, expire_on_commit=False)

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise TransportError(f"database error: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _empty_to_none(value: Optional[str]) -> Optional[str]:
    return None if _blank(value) else value


class ProfileStore:
    def __init__(self, db: Database):
        self.db = db

    def upsert(self, user_id: str, **fields: Optional[str]) -> bool:
        """Merge-write profile fields; absent, None or blank values keep what is stored."""
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
        try:
            with self.db.session_scope() as session:
                row = session.get(StudentRow, user_id)
                if row is None:
                    row = StudentRow(discord_id=user_id)
                    session.add(row)
                for key, value in fields.items():
                    if not _blank(value):
                        setattr(row, key, value)
            return True
        except TransportError as exc:
            logger.warning("Profile upsert failed for %s: %s", user_id, exc)
            return False

    def update_cv_text(self, user_id: str, cv_text: Optional[str]) -> bool:
        if _blank(cv_text):
            logger.info("Skipping CV text update for %s: text is blank", user_id)
            return False
        return self.upsert(user_id, cv_text=cv_text)

    def get(self, user_id: str) -> Optional[Profile]:
        with self.db.session_scope() as session:
            row = session.get(StudentRow, user_id)
            if row is None:
                return None
            latest = session.execute(
                select(FeedbackRow).where(FeedbackRow.discord_id == user_id).order_by(FeedbackRow.id.desc()).limit(1)
            ).scalars().first()
            return Profile(
                user_id=row.discord_id,
                name=row.name,
                email=row.email,
                skills=row.skills,
                career_interest=row.career_interest,
                cv_text=row.cv_text,
                feedback=latest.feedback_text if latest else None,
                stars=latest.stars if latest else None,
            )

    def delete(self, user_id: str) -> bool:
        try:
            with self.db.session_scope() as session:
                result = session.execute(delete(StudentRow).where(StudentRow.discord_id == user_id))
                return result.rowcount > 0
        except TransportError as exc:
            logger.warning("Profile delete failed for %s: %s", user_id, exc)
            return False


class AssignmentStore:
    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _exists(session: Session, user_id: str, opportunity_id: str) -> bool:
        query = (
            select(OpportunityRow.id)
            .where(OpportunityRow.opportunity_id == opportunity_id, OpportunityRow.discord_id == user_id)
            .limit(1)
        )
        return session.execute(query).first() is not None

    def exists(self, user_id: str, opportunity_id: str) -> bool:
        with self.db.session_scope() as session:
            return self._exists(session, user_id, opportunity_id)

    def insert(self, user_id: str, opportunity: Opportunity) -> bool:
        """Store an assignment; returns False when the pair was already present."""
        with self.db.session_scope() as session:
            if self._exists(session, user_id, opportunity.id):
                logger.debug("Opportunity %s already assigned to %s", opportunity.id, user_id)
                return False
            session.add(
                OpportunityRow(
                    opportunity_id=opportunity.id,
                    discord_id=user_id,
                    title=opportunity.title,
                    description=opportunity.description,
                    job_type=opportunity.type,
                    application_deadline=_deadline_to_date(opportunity.deadline),
                    url=_empty_to_none(opportunity.url),
                    wage=_empty_to_none(opportunity.wage),
                    home_office=_empty_to_none(opportunity.home_office),
                    benefits=_empty_to_none(opportunity.benefits),
                    formal_requirements=_empty_to_none(opportunity.formal_requirements),
                    technical_requirements=_empty_to_none(opportunity.technical_requirements),
                    contact_person=_empty_to_none(opportunity.contact_person),
                    company=_empty_to_none(opportunity.company),
                )
            )
        logger.info("Stored opportunity %s for %s", opportunity.id, user_id)
        return True

    def delete_all(self, user_id: str) -> int:
        with self.db.session_scope() as session:
            result = session.execute(delete(OpportunityRow).where(OpportunityRow.discord_id == user_id))
            deleted = result.rowcount
        logger.info("Deleted %d opportunities for %s", deleted, user_id)
        return deleted

    def list_all(self, user_id: str) -> List[Opportunity]:
        with self.db.session_scope() as session:
            rows = session.execute(
                select(OpportunityRow).where(OpportunityRow.discord_id == user_id).order_by(OpportunityRow.id)
            ).scalars().all()
            return [_row_to_opportunity(row) for row in rows]


class FeedbackStore:
    def __init__(self, db: Database):
        self.db = db

    def add(self, user_id: str, text: str) -> bool:
        try:
            with self.db.session_scope() as session:
                session.add(FeedbackRow(discord_id=user_id, feedback_text=text, stars=None))
            return True
        except TransportError as exc:
            logger.warning("Feedback insert failed for %s: %s", user_id, exc)
            return False

    def rate(self, user_id: str, stars: int) -> bool:
        """Attach a 1-5 rating to the user's latest unrated feedback."""
        if not 1 <= stars <= 5:
            raise ValueError(f"stars must be between 1 and 5, got {stars}")
        try:
            with self.db.session_scope() as session:
                row = session.execute(
                    select(FeedbackRow)
                    .where(FeedbackRow.discord_id == user_id, FeedbackRow.stars.is_(None))
                    .order_by(FeedbackRow.id.desc())
                    .limit(1)
                ).scalars().first()
                if row is None:
                    logger.info("No unrated feedback for %s", user_id)
                    return False
                row.stars = stars
            return True
        except TransportError as exc:
            logger.warning("Feedback rating failed for %s: %s", user_id, exc)
            return False


def _deadline_to_date(deadline: Optional[str]) -> Optional[date]:
    if _blank(deadline) or deadline == UNKNOWN_DEADLINE:
        return None
    try:
        return date.fromisoformat(deadline)
    except ValueError:
        logger.warning("Unparseable deadline %r stored as unknown", deadline)
        return None


def _row_to_opportunity(row: OpportunityRow) -> Opportunity:
    return Opportunity(
        id=row.opportunity_id,
        title=row.title or "",
        company=row.company or "Unknown",
        type=row.job_type or "N/A",
        deadline=row.application_deadline.isoformat() if row.application_deadline else UNKNOWN_DEADLINE,
        description=row.description or "",
        url=row.url or "",
        wage=row.wage or "",
        home_office=row.home_office or "",
        benefits=row.benefits or "",
        formal_requirements=row.formal_requirements or "",
        technical_requirements=row.technical_requirements or "",
        contact_person=row.contact_person or "",
    )


def delete_profile(profiles: ProfileStore, assignments: AssignmentStore, user_id: str) -> bool:
    """Remove the user's assignments, then the profile. Returns whether a profile existed."""
    assignments.delete_all(user_id)
    deleted = profiles.delete(user_id)
    logger.info("Profile %s for %s", "deleted" if deleted else "not found", user_id)
    return deleted
