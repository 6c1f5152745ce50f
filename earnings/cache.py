import json
import logging
from redis import Redis, RedisError

logger = logging.getLogger(__name__)


class ReferralCache:
    """Cache referral-network responses in Redis; a no-op when REDIS_URL is unset."""

    KEY_PREFIX = "referral-network"

    def __init__(self, app=None):
        self.redis = None
        self.ttl = 300
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.ttl = app.config.get("REFERRAL_CACHE_TTL", 300)
        redis_url = app.config.get("REDIS_URL")
        self.redis = Redis.from_url(redis_url) if redis_url else None
        app.extensions["referral_cache"] = self

    @property
    def enabled(self):
        return self.redis is not None

    def _key(self, user_id):
        return f"{self.KEY_PREFIX}:{user_id}"

    def get_network(self, user_id, loader):
        """Return the cached network for user_id, computing it with loader() on a miss."""
        if not self.enabled:
            return loader()

        key = self._key(user_id)
        try:
            cached = self.redis.get(key)
            if cached:
                return json.loads(cached)
        except RedisError as e:
            logger.warning(f"Referral cache read failed for user {user_id}: {e}")
            return loader()

        network = loader()
        try:
            self.redis.setex(key, self.ttl, json.dumps(network))
        except RedisError as e:
            logger.warning(f"Referral cache write failed for user {user_id}: {e}")
        return network

    def invalidate(self, user_ids):
        if not self.enabled or not user_ids:
            return
        try:
            self.redis.delete(*[self._key(uid) for uid in user_ids])
        except RedisError as e:
            logger.warning(f"Referral cache invalidation failed for users {list(user_ids)}: {e}")
