"""
Redis connection and cache for generated question batches
"""
import redis
import json
import logging
import hashlib
from typing import Optional, Any, List
from watchparty.config import settings

logger = logging.getLogger(__name__)


def connect_redis(url: str) -> Optional[redis.Redis]:
    """Open a Redis client, or return None when Redis is disabled or down"""
    if not url:
        logger.info("REDIS_URL not set. Caching and invalidation fan-out disabled.")
        return None
    
    try:
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5
        )
        # Test connection
        client.ping()
        logger.info("Redis connection established")
        return client
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
        return None


class CacheService:
    """Redis-based cache for Gemini question batches"""
    
    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client
    
    def generate_cache_key(
        self,
        movie_title: str,
        count: int,
        locale: str,
        existing_questions: List[str]
    ) -> str:
        """
        Generate deterministic cache key for generation parameters
        
        Existing question texts are hashed in, since they change the prompt.
        """
        existing = "|".join(sorted(q.strip().lower() for q in existing_questions))
        existing_hash = hashlib.sha256(existing.encode()).hexdigest()[:16]
        title = movie_title.strip().lower()
        return f"questions:{title}:{count}:{locale}:{existing_hash}"
    
    def get(self, key: str) -> Optional[Any]:
        """Get value from cache, None on miss or error"""
        if not self.redis_client:
            return None
        
        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.error(f"Cache get error: {str(e)}")
            return None
    
    def set(
        self,
        key: str,
        value: Any,
        ttl: int = None
    ) -> bool:
        """
        Set value in cache
        
        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)
            
        Returns:
            Success status
        """
        if not self.redis_client:
            return False
        
        try:
            ttl = ttl or settings.GENERATED_QUESTIONS_CACHE_TTL
            self.redis_client.setex(key, ttl, json.dumps(value))
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except redis.RedisError as e:
            logger.error(f"Cache set error: {str(e)}")
            return False
    
    def delete(self, key: str) -> bool:
        """Delete key from cache"""
        if not self.redis_client:
            return False
        
        try:
            self.redis_client.delete(key)
            logger.info(f"Cache delete: {key}")
            return True
        except redis.RedisError as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False


# Global instances
redis_client = connect_redis(settings.REDIS_URL)
cache_service = CacheService(redis_client)
