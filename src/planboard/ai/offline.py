# src/planboard/ai/offline.py

from __future__ import annotations

import logging
from typing import Any

from ..core.ports import Generated

logger = logging.getLogger(__name__)


class OfflineGenerator:
    """
    Generator used when no external API is configured.

    Never produces anything: every kind answers None, which the planner reports
    as "AI unavailable" and never caches.
    """

    def generate(self, kind: str, inputs: dict[str, Any]) -> Generated:
        logger.debug("Offline generator: kind=%s skipped", kind)
        return None
