"""
Local Filesystem Gateway.
Stores each session document as a JSON file on the server's local filesystem.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import aiofiles

from ..core.errors import ErrorKind, StoreError
from .interface import Document
from .memory_gateway import InMemoryGateway

logger = logging.getLogger(__name__)


class LocalFileGateway(InMemoryGateway):
    """
    In-process gateway persisted to ``<base_dir>/<session_id>.json``.

    Subscriptions only see writes made through this process.
    """

    def __init__(self, base_dir: str = "./data/sessions"):
        """
        Args:
            base_dir: Directory holding one JSON file per session
        """
        super().__init__()
        self.base_dir = Path(base_dir).resolve()

    def _get_full_path(self, session_id: str) -> Path:
        """Map a session id to its file, refusing ids that escape base_dir."""
        full_path = (self.base_dir / f"{session_id}.json").resolve()
        if full_path.parent != self.base_dir:
            raise StoreError(f"Invalid session id: {session_id!r}", session_id=session_id,
                             kind=ErrorKind.PERMISSION_DENIED)
        return full_path

    async def init(self) -> None:
        """Load every stored session into memory."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in sorted(self.base_dir.glob("*.json")):
            try:
                async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                    self._documents[path.stem] = json.loads(await f.read())
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable session file {path.name}: {e}")
        logger.info(f"Loaded {len(self._documents)} sessions from {self.base_dir}")

    async def set(self, session_id: str, document: Document) -> None:
        path = self._get_full_path(session_id)
        await super().set(session_id, document)
        await self._write(session_id, path)

    async def set_merged(self, session_id: str, partial: Document) -> None:
        path = self._get_full_path(session_id)
        await super().set_merged(session_id, partial)
        await self._write(session_id, path)

    async def delete(self, session_id: str) -> None:
        path = self._get_full_path(session_id)
        await super().delete(session_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to delete session file: {e}", session_id=session_id) from e

    async def _write(self, session_id: str, path: Path) -> None:
        document: Optional[Document] = self._documents.get(session_id)
        if document is None:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(document, indent=2, ensure_ascii=False))
        except OSError as e:
            raise StoreError(f"Failed to write session file: {e}", session_id=session_id) from e
