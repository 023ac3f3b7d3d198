import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiofiles
from fastapi import Request

logger = logging.getLogger(__name__)


class RequestLog:
    """Appends inbound requests to a JSON-lines file for debugging.

    Writes are serialized with a lock and the file is reopened for every
    record. A disabled log (no path) drops records silently; a failing
    write is logged and otherwise ignored.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.path)

    async def write(self, request: Request, body: Any):
        if not self.enabled:
            return

        record = {
            "datetime": datetime.now(timezone.utc).isoformat(),
            "remote": request.client.host if request.client else None,
            "method": request.method,
            "path": request.url.path,
            "headers": dict(request.headers),
            "body": body,
        }
        try:
            line = json.dumps(record, ensure_ascii=False, default=str)
            async with self._lock:
                async with aiofiles.open(self.path, "a", encoding="utf-8") as log_file:
                    await log_file.write(line + "\n")
        except OSError as e:
            logger.warning(f"Failed to write request log to {self.path}: {e}")
