import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bitbeam.core.errors import BitBeamError

logger = logging.getLogger("bitbeam")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BitBeamError)
    async def bitbeam_error_handler(request: Request, exc: BitBeamError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            "event=request_failed kind=%s operation=%s identifier=%s path=%s error=%s cause=%r",
            type(exc).__name__,
            exc.operation,
            exc.identifier,
            request.url.path,
            exc,
            exc.__cause__,
        )
        return JSONResponse({"detail": exc.public_message}, status_code=exc.status_code)
