"""
SQLite persistence for reports (SQLAlchemy)
"""

import secrets
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from caregiver_card.config import settings
from caregiver_card.core.logging import get_logger
from caregiver_card.models.db_models import Base, Report

logger = get_logger(__name__)

REPORT_ID_LENGTH = 20


def new_report_id(length: int = REPORT_ID_LENGTH) -> str:
    return secrets.token_urlsafe(length)[:length]


def _make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # the engine is shared between request threads
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, future=True)


class ReportStore:
    """Stores and loads reports; one engine per store."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.database_url
        self.engine = _make_engine(self.database_url)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def init_db(self):
        Base.metadata.create_all(self.engine)
        logger.info(f"Report store ready at {self.engine.url.render_as_string(hide_password=True)}")

    def create(self, report: Report) -> Report:
        if not report.id:
            report.id = new_report_id()
        if not report.created_at:
            report.created_at = datetime.now(timezone.utc).isoformat()
        with self.Session() as session:
            session.add(report)
            session.commit()
        logger.info(f"Stored report {report.id}")
        return report

    def get(self, report_id: str) -> Optional[Report]:
        with self.Session() as session:
            return session.get(Report, report_id)

    def list_recent(self, limit: int = 200) -> List[Report]:
        with self.Session() as session:
            stmt = select(Report).order_by(Report.created_at.desc()).limit(limit)
            return list(session.scalars(stmt))


# Global report store instance
report_store = ReportStore()
