import redis
from redis.exceptions import RedisError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.utils.logging import get_logger

logger = get_logger(__name__)


#tenacity retry
def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(RedisError),
    )


class BrokerProbe:
    """
    Sprawdza czy redis (broker celery) odpowiada.
    Bez brokera powiadomienia nie wyjda, ale API dalej dziala.
    """

    def __init__(self, url: str):
        self.redis = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
        )

    @redis_retry()
    def _ping(self) -> bool:
        return bool(self.redis.ping())

    def is_alive(self) -> bool:
        try:
            return self._ping()
        except RedisError as e:
            logger.warning(f"Broker ping failed: {e}")
            return False
