# marketplace/utils/retry.py
import redis
import requests
import stripe
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type


def _retry_on(exc_types, multiplier: float, max_wait: float, attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=multiplier, min=multiplier, max=max_wait),
        retry=retry_if_exception_type(exc_types),
    )


# geocoding and other plain HTTP calls
def http_retry():
    return _retry_on(requests.RequestException, multiplier=0.3, max_wait=3)


def redis_retry():
    return _retry_on(redis.RedisError, multiplier=0.2, max_wait=2)


# only network failures; card declines and bad requests must surface at once
def gateway_retry():
    return _retry_on(stripe.APIConnectionError, multiplier=0.5, max_wait=4, attempts=2)
