# backend/salon_booking/middleware/audit.py
# Writes method / path / status / IP / duration for every request.
# Does not block the request and does not touch the database.

import json
import logging
import time

from fastapi import Request

logger = logging.getLogger("salon_booking.audit")


def client_ip(request: Request) -> str:
    # X-Real-IP is set by the reverse proxy; X-Forwarded-For is client controlled
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


async def audit_middleware(request: Request, call_next):
    start_ts = time.time()

    response = await call_next(request)

    duration_ms = int((time.time() - start_ts) * 1000)

    record = {
        "ts": int(start_ts),
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "ip": client_ip(request),
        "duration_ms": duration_ms,
    }

    logger.info(json.dumps(record, ensure_ascii=False))

    return response
