from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import CompetitionProject

logger = logging.getLogger(__name__)


def to_dict(row: Any) -> Dict[str, Any]:
	return {c.name: getattr(row, c.name) for c in row.__table__.columns}


def clamp_percentage(value: float) -> float:
	return max(0.0, min(float(value), 100.0))


def require(message: str, *values: Any) -> None:
	"""400 with ``message`` unless every value is non-empty."""
	for value in values:
		if value is None or (isinstance(value, str) and not value.strip()):
			raise HTTPException(status_code=400, detail=message)


@contextmanager
def db_guard(db: Session, message: str) -> Iterator[None]:
	"""Roll back and answer with a generic message on database failure."""
	try:
		yield
	except SQLAlchemyError:
		db.rollback()
		logger.exception(message)
		raise HTTPException(status_code=500, detail=message)


def get_project_or_404(db: Session, project_id: str) -> CompetitionProject:
	with db_guard(db, "加载项目失败"):
		project = db.get(CompetitionProject, project_id)
	if project is None:
		raise HTTPException(status_code=404, detail="项目不存在")
	return project
