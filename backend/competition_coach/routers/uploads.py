from __future__ import annotations
import logging
import re
import time
from typing import Any, Dict, Type

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..models import UploadedFile
from ..storage import LocalFileStorage, StorageError
from .common import db_guard, to_dict

logger = logging.getLogger(__name__)

_EXT_RE = re.compile(r"[^A-Za-z0-9]")


def _extension(filename: str) -> str:
	ext = _EXT_RE.sub("", filename.rsplit(".", 1)[-1]) if "." in filename else ""
	return ext.lower() or "bin"


def _size_label(max_bytes: int) -> str:
	return f"{max_bytes // (1024 * 1024)}MB"


async def store_upload(
	db: Session,
	storage: LocalFileStorage,
	model: Type[Any],
	*,
	project_id: str,
	material_type: str,
	key_prefix: str,
	upload: UploadFile,
	max_bytes: int,
	file_type: str,
	**fields: Any,
) -> Dict[str, Any]:
	"""Write the upload to storage, then record it; the object is removed again if the insert fails."""
	# at most one byte past the limit
	data = await upload.read(max_bytes + 1)
	if len(data) > max_bytes:
		raise HTTPException(status_code=400, detail=f"文件大小不能超过{_size_label(max_bytes)}")
	filename = upload.filename or "upload"
	millis = int(time.time() * 1000)
	ext = _extension(filename)
	while await storage.file_exists(f"{key_prefix}/{millis}.{ext}"):
		millis += 1
	key = f"{key_prefix}/{millis}.{ext}"
	try:
		await storage.upload_bytes(key, data)
	except (StorageError, OSError):
		logger.exception("Upload of %s failed", key)
		raise HTTPException(status_code=500, detail="上传失败")
	try:
		with db_guard(db, "上传失败"):
			row = model(
				project_id=project_id,
				material_type=material_type,
				file_name=filename,
				file_path=key,
				file_size=len(data),
				**fields,
			)
			db.add(row)
			db.flush()
			db.add(UploadedFile(
				project_id=project_id,
				related_id=row.id,
				file_name=filename,
				file_path=key,
				file_size=len(data),
				file_type=file_type,
				mime_type=upload.content_type or "application/octet-stream",
			))
			db.commit()
			db.refresh(row)
	except HTTPException:
		await storage.delete_file(key)
		raise
	out = to_dict(row)
	out["public_url"] = storage.get_public_url(key)
	return out


async def delete_upload(db: Session, storage: LocalFileStorage, model: Type[Any], *, project_id: str, row_id: str) -> None:
	"""Remove the stored object first, then its rows; a storage failure keeps the rows."""
	with db_guard(db, "删除失败"):
		row = db.query(model).filter(model.id == row_id, model.project_id == project_id).first()
	if row is None:
		raise HTTPException(status_code=404, detail="文件不存在")
	try:
		await storage.delete_file(row.file_path)
	except (StorageError, OSError):
		logger.exception("Removing %s from storage failed", row.file_path)
		raise HTTPException(status_code=500, detail="删除失败")
	with db_guard(db, "删除失败"):
		db.query(UploadedFile).filter(
			UploadedFile.project_id == project_id,
			UploadedFile.file_path == row.file_path,
		).delete()
		db.delete(row)
		db.commit()
