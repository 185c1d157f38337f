"""
Redis-based record of the most recent ROI driver run.
Lets operators see when the tick last ran and how it went.
"""

import json
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

KEY = "roi:tick:last"
TTL = 24 * 60 * 60  # a day; a missing key means the beat has stalled


class TickStatusStore:
    def __init__(self, redis_client: Optional[Redis] = None):
        self.redis = redis_client or Redis.from_url(
            getattr(settings, "ROI_STATUS_REDIS_URL", "redis://redis:6379/0")
        )

    def record(self, summary: Dict[str, Any]) -> None:
        """Store the run summary. Redis trouble is logged, never raised."""
        try:
            self.redis.setex(KEY, TTL, json.dumps(summary))
        except RedisError as e:
            logger.warning(f"Could not record ROI tick status: {e}")

    def get(self) -> Optional[Dict[str, Any]]:
        raw = self.redis.get(KEY)
        return json.loads(raw) if raw else None
