"""Block catalog endpoints for script authoring clients."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from packages.swapstudio_core.blocks.model import BLOCK_CATEGORIES, block_catalog

logger = logging.getLogger("swapstudio_api.blocks")


router = APIRouter(prefix="/api/v1/blocks", tags=["blocks"])


@router.get("/catalog")
def get_block_catalog() -> dict[str, Any]:
    logger.info("[BLOCKS] Catalog request")
    blocks = block_catalog()
    return {
        "categories": list(BLOCK_CATEGORIES),
        "count": len(blocks),
        "blocks": blocks,
    }
