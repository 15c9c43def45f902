import json
import logging
import time
import uuid

from flask import g, request

logger = logging.getLogger("staysync.request")


def _start_request():
    g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    g.request_started = time.time()


def _log_request(response):
    req_id = getattr(g, "request_id", None) or uuid.uuid4().hex
    started = getattr(g, "request_started", None)
    duration_ms = int((time.time() - started) * 1000) if started else 0
    response.headers["X-Request-ID"] = req_id
    logger.info(json.dumps({
        "request_id": req_id,
        "method": request.method,
        "path": request.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }))
    return response


def init_request_logging(app):
    app.before_request(_start_request)
    app.after_request(_log_request)
