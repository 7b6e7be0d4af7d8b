import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateTable

from models import Visit

logger = logging.getLogger("visit_counter")


class VisitStorageError(Exception):
    """Base class for storage failures; `message` is the driver's text, unmodified."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DatabaseConnectionError(VisitStorageError):
    pass


class QueryError(VisitStorageError):
    pass


@dataclass
class VisitResult:
    visit_id: int
    ts: datetime
    count: int
    database: str


def _driver_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def open_connection(db: Session):
    # Pas de retry : un échec de connexion est fatal pour la requête
    try:
        return db.connection()
    except SQLAlchemyError as e:
        logger.warning("Database connection failed: %s", _driver_message(e))
        raise DatabaseConnectionError(_driver_message(e)) from e


def ensure_schema(db: Session) -> None:
    try:
        # une seule instruction, sans vérification préalable séparée
        db.connection().execute(CreateTable(Visit.__table__, if_not_exists=True))
    except SQLAlchemyError as e:
        logger.warning("Schema creation failed: %s", _driver_message(e))
        raise QueryError(_driver_message(e)) from e


def insert_visit(db: Session) -> Visit:
    visit = Visit()
    try:
        db.add(visit)
        db.flush()
        # id et ts sont attribués par la base
        db.refresh(visit)
    except SQLAlchemyError as e:
        logger.warning("Visit insert failed: %s", _driver_message(e))
        raise QueryError(_driver_message(e)) from e
    return visit


def count_visits(db: Session) -> int:
    try:
        return db.query(func.count(Visit.id)).scalar() or 0
    except SQLAlchemyError as e:
        logger.warning("Visit count failed: %s", _driver_message(e))
        raise QueryError(_driver_message(e)) from e


def record_visit(db: Session) -> VisitResult:
    """
    Record one visit and return the running total.

    The insert and the count run in the same transaction, so the total always
    includes this visit. Concurrent requests may still interleave between the
    two statements; the total is a snapshot, not a sequence number.
    """
    conn = open_connection(db)
    try:
        ensure_schema(db)
        visit = insert_visit(db)
        count = count_visits(db)
        # lu avant le commit, qui expire les attributs de la session
        visit_id, ts = visit.id, visit.ts
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Visit commit failed: %s", _driver_message(e))
        raise QueryError(_driver_message(e)) from e
    except QueryError:
        db.rollback()
        raise

    return VisitResult(
        visit_id=visit_id,
        ts=ts,
        count=count,
        database=conn.engine.url.database or "",
    )
