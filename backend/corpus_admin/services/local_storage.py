"""Filesystem object storage for the local gateway.

Objects live at ``<root>/<bucket>/<path>`` and are served by the FastAPI app
under ``/storage/<bucket>/<path>`` (see ``main.py``).
"""
from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from corpus_admin.errors import GatewayError

logger = logging.getLogger(__name__)


class LocalObjectStorage:
    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise GatewayError(f"Invalid object path: {path}", status_code=400)
        return target

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        target = self._resolve(bucket, path)
        if target.exists():
            raise GatewayError("The resource already exists", status_code=409)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise GatewayError(f"Could not store {path}: {exc}") from exc
        logger.debug("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{quote(path)}"

    def remove(self, bucket: str, path: str) -> None:
        target = self._resolve(bucket, path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise GatewayError(f"Could not remove {path}: {exc}") from exc
