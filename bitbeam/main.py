import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bitbeam.api.routes import router
from bitbeam.cleaner import reconcile_storage
from bitbeam.config import Config, load_config
from bitbeam.context import build_context
from bitbeam.core.exceptions import register_exception_handlers

logger = logging.getLogger("bitbeam")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(config: Config) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_location:
        handlers.append(logging.FileHandler(config.log_location, encoding="utf-8"))
    logging.basicConfig(
        level=config.log_level.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def create_app(config: Config | None = None) -> FastAPI:
    config = config or load_config()
    configure_logging(config)

    app = FastAPI(title="bitBeam", version="0.2.0")

    origins = [origin.strip() for origin in config.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    context = build_context(config)
    app.state.context = context
    removed = reconcile_storage(context)
    logger.info(
        "event=startup db_type=%s data_path=%s base_url=%s://%s allow_register=%s swept=%d",
        config.db_type,
        config.data_path,
        config.scheme,
        config.base_url,
        config.allow_register,
        removed,
    )

    app.include_router(router)
    register_exception_handlers(app)
    return app
