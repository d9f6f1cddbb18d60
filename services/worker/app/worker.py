import json
import logging
import time

import httpx
import redis

from config import Config
from services.shared_auth import SERVICE, generate_token

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("worker")


def handle_message(payload: str, client: httpx.Client) -> dict | None:
    """Trigger a compliance recompute for one queue message. Malformed messages are dropped."""
    try:
        data = json.loads(payload)
    except ValueError:
        logger.warning(f"Dropping malformed queue message: {payload!r}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Dropping queue message that is not an object: {payload!r}")
        return None
    reason = data.get("reason", "unspecified")
    token = generate_token("worker", role=SERVICE)
    r = client.post(
        f"{Config.COMPLIANCE_ENGINE_URL}/recompute",
        headers={"Authorization": f"Bearer {token}"},
        timeout=300,
    )
    r.raise_for_status()
    summary = r.json()
    logger.info(f"Recompute ({reason}) -> {summary}")
    return summary


def loop(rc: redis.Redis, client: httpx.Client):
    item = rc.blpop([Config.RECOMPUTE_QUEUE], timeout=5)
    if not item:
        time.sleep(1)
        return
    _, payload = item
    try:
        handle_message(payload, client)
    except httpx.HTTPError as e:
        logger.error(f"Recompute request failed: {e}", exc_info=True)


if __name__ == "__main__":
    rc = redis.from_url(Config.REDIS_URL, decode_responses=True)
    with httpx.Client() as client:
        while True:
            loop(rc, client)
