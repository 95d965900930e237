"""
Identity of the acting user.

Authentication happens upstream; the engine only needs an opaque user id for
the changed_by field of status history entries.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Read the acting user's id from the X-User-Id header"""
    if not x_user_id or not x_user_id.strip():
        logger.warning("⚠️ Missing X-User-Id header on a write that records history")
        raise HTTPException(status_code=401, detail="Not authenticated. X-User-Id header required.")
    return x_user_id.strip()
