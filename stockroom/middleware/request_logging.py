import time
import logging
from fastapi import Request

logger = logging.getLogger("access")


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        process_time = (time.perf_counter() - start_time) * 1000

        logger.info(
            "",
            extra={
                "client_addr": request.client.host if request.client else "unknown",
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "process_time_ms": round(process_time, 2),
            },
        )
