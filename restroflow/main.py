"""ASGI entrypoint for the billing API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from restroflow.api.v1.router import get_api_router
from restroflow.core.config import get_config
from restroflow.core.exceptions import RestroFlowException
from restroflow.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)


def restroflow_exception_handler(request: Request, exc: RestroFlowException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "api.request.failed",
            extra={"event": "api.request.failed", "path": request.url.path, "error_code": exc.kind},
        )
    envelope = ErrorEnvelope(error_code=exc.kind, detail=exc.message or exc.kind)
    return JSONResponse(status_code=exc.status_code, content=envelope.model_dump())


def create_app() -> FastAPI:
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION)
    app.include_router(get_api_router())
    app.add_exception_handler(RestroFlowException, restroflow_exception_handler)

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn restroflow.main:app`.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    from restroflow.core.startup import bootstrap

    bootstrap()
    settings = get_config()
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
