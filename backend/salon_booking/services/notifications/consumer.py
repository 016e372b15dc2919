"""
Redis event consumer loops.

- p2p_consumer_loop: booking emails from events:p2p
- retry_consumer_loop: moves events:p2p:retry back to events:p2p

Started as asyncio tasks in the app lifespan.
"""

import asyncio
import json
import logging

import redis.asyncio as aioredis

from .delivery import process_event

logger = logging.getLogger(__name__)

MAX_RETRIES = 3

P2P_QUEUE = "events:p2p"
RETRY_QUEUE = "events:p2p:retry"
DEAD_QUEUE = "events:p2p:dead"


async def p2p_consumer_loop(redis_url: str) -> None:
    """
    Consume events from events:p2p.

    Uses BRPOP with 5s timeout to avoid busy-waiting.
    On failure, retries up to MAX_RETRIES, then moves to dead-letter queue.
    """
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info("p2p_consumer_loop started")

    try:
        while True:
            try:
                result = await r.brpop(P2P_QUEUE, timeout=5)
                if result is None:
                    continue

                _, raw = result
                await process_event_safe(r, raw)

            except asyncio.CancelledError:
                logger.info("p2p_consumer_loop cancelled")
                raise
            except Exception:
                logger.exception("p2p_consumer_loop error, retrying in 2s")
                await asyncio.sleep(2)
    finally:
        await r.aclose()


async def process_event_safe(r: aioredis.Redis, raw: str) -> None:
    """
    Parse and process a single event with retry logic.

    On failure:
    - If attempts < MAX_RETRIES → push to retry queue
    - Otherwise → push to dead-letter queue
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in event queue: {raw[:200]}")
        await r.rpush(DEAD_QUEUE, raw)
        return

    attempt = data.get("_attempt", 1)

    try:
        await process_event(data)
    except Exception:
        logger.exception(
            f"Failed to process event type={data.get('type')} "
            f"(attempt {attempt}/{MAX_RETRIES})"
        )

        if attempt < MAX_RETRIES:
            data["_attempt"] = attempt + 1
            await r.rpush(RETRY_QUEUE, json.dumps(data))
            logger.info(f"Event re-queued to {RETRY_QUEUE} (attempt {attempt + 1})")
        else:
            await r.rpush(DEAD_QUEUE, json.dumps(data))
            logger.warning(f"Event moved to dead-letter queue {DEAD_QUEUE}: type={data.get('type')}")


async def retry_consumer_loop(redis_url: str) -> None:
    """Re-insert events from the retry queue after a brief delay."""
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info("retry_consumer_loop started")

    try:
        while True:
            try:
                raw = await r.lpop(RETRY_QUEUE)
                if raw:
                    await r.rpush(P2P_QUEUE, raw)
                    logger.info(f"Retry: moved event from {RETRY_QUEUE} → {P2P_QUEUE}")
                else:
                    await asyncio.sleep(5)

            except asyncio.CancelledError:
                logger.info("retry_consumer_loop cancelled")
                raise
            except Exception:
                logger.exception("retry_consumer_loop error, retrying in 5s")
                await asyncio.sleep(5)
    finally:
        await r.aclose()
