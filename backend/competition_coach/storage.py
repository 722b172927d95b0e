from __future__ import annotations
import logging
import shutil
from pathlib import Path
from typing import Optional

from .settings import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
	pass


class LocalFileStorage:
	"""Bucket-style file storage on the local filesystem.

	Keys are relative paths such as ``<project>/<type>/<millis>.<ext>``.
	"""

	def __init__(self, base_dir: Optional[str] = None, bucket: Optional[str] = None, public_url: Optional[str] = None):
		self.bucket = bucket or settings.storage_bucket
		self.base_path = Path(base_dir or settings.storage_dir).resolve() / self.bucket
		self.base_path.mkdir(parents=True, exist_ok=True)
		self.public_url = (public_url or settings.storage_public_url).rstrip("/")

	def _path(self, key: str) -> Path:
		path = (self.base_path / key).resolve()
		if self.base_path not in path.parents:
			raise StorageError(f"invalid storage key: {key}")
		return path

	def get_public_url(self, key: str) -> str:
		return f"{self.public_url}/{self.bucket}/{key}"

	async def upload_bytes(self, key: str, data: bytes) -> str:
		dest = self._path(key)
		if dest.exists():
			raise StorageError(f"object already exists: {key}")
		dest.parent.mkdir(parents=True, exist_ok=True)
		dest.write_bytes(data)
		return self.get_public_url(key)

	async def delete_file(self, key: str) -> bool:
		path = self._path(key)
		if path.exists():
			path.unlink()
			return True
		logger.warning("Storage object %s already gone", key)
		return False

	async def delete_prefix(self, prefix: str) -> int:
		root = self._path(prefix)
		if not root.is_dir():
			return 0
		count = sum(1 for p in root.rglob("*") if p.is_file())
		shutil.rmtree(root)
		return count

	async def file_exists(self, key: str) -> bool:
		return self._path(key).exists()


def get_storage() -> LocalFileStorage:
	return LocalFileStorage()
