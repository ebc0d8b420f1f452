"""
Redis read-through cache for recorded submission grades

Grades are immutable snapshots until re-recorded. The recorder writes the new
grade over the entry; read-through fills only add missing entries.
"""
import redis
import logging
from typing import Optional
from pydantic import ValidationError
from app.config import settings
from app.schemas.grading import SubmissionGrade

logger = logging.getLogger(__name__)


class CacheService:
    """Caches SubmissionGrade JSON by submission id; a no-op when Redis is unavailable"""

    def __init__(self, url: Optional[str] = None, enabled: Optional[bool] = None):
        self.redis_client = None

        if not (settings.CACHE_ENABLED if enabled is None else enabled):
            logger.info("Grade cache disabled by configuration")
            return

        try:
            client = redis.from_url(
                url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            client.ping()
            self.redis_client = client
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Grade cache disabled.")

    @staticmethod
    def grade_key(submission_id: str) -> str:
        return f"grade:{submission_id}"

    def get_grade(self, submission_id: str) -> Optional[SubmissionGrade]:
        """
        Cached grade for a submission

        Returns:
            SubmissionGrade, or None on a miss, an unreadable entry or a Redis error
        """
        if not self.redis_client:
            return None

        key = self.grade_key(submission_id)
        try:
            raw = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Grade cache read failed for {key}: {str(e)}")
            return None

        if not raw:
            logger.debug(f"Grade cache miss: {key}")
            return None

        try:
            grade = SubmissionGrade.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cached grade {key}: {str(e)}")
            self.invalidate_grade(submission_id)
            return None

        logger.debug(f"Grade cache hit: {key}")
        return grade

    def set_grade(
        self,
        grade: SubmissionGrade,
        ttl: Optional[int] = None,
        only_if_absent: bool = False
    ) -> bool:
        """
        Store a recorded grade; ttl defaults to GRADE_CACHE_TTL

        Read-through fills pass only_if_absent so a grade read before a
        re-grade never replaces the entry the re-grade wrote.
        """
        if not self.redis_client:
            return False

        key = self.grade_key(grade.submission_id)
        ttl = ttl or settings.GRADE_CACHE_TTL
        try:
            stored = self.redis_client.set(key, grade.model_dump_json(), ex=ttl, nx=only_if_absent)
        except redis.RedisError as e:
            logger.error(f"Grade cache write failed for {key}: {str(e)}")
            return False

        if not stored:
            logger.debug(f"Grade cache already filled: {key}")
            return False

        logger.debug(f"Grade cached: {key} (TTL: {ttl}s)")
        return True

    def invalidate_grade(self, submission_id: str) -> bool:
        """Drop a cached grade"""
        if not self.redis_client:
            return False

        key = self.grade_key(submission_id)
        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Grade cache invalidation failed for {key}: {str(e)}")
            return False

        return True


# Global instance
cache_service = CacheService()
