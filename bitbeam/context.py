from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.engine import Engine

from bitbeam.config import Config
from bitbeam.core.locks import KeyedLock
from bitbeam.core.metrics import MetricsStore
from bitbeam.db import build_engine, init_db
from bitbeam.services.consumption import ConsumptionEngine
from bitbeam.services.identity import IdentityStore
from bitbeam.services.registration import RegistrationService
from bitbeam.services.upload import UploadService
from bitbeam.storage import BlobStore


@dataclass
class ServiceContext:
    """Everything a request handler needs, built once per process."""

    config: Config
    engine: Engine
    blobs: BlobStore
    locks: KeyedLock
    metrics: MetricsStore
    identities: IdentityStore
    uploads: UploadService
    consumption: ConsumptionEngine
    registration: RegistrationService


def build_context(config: Config, engine: Engine | None = None) -> ServiceContext:
    engine = engine or build_engine(config)
    init_db(engine)

    blobs = BlobStore(config.data_path)
    blobs.ensure_root()
    locks = KeyedLock()
    metrics = MetricsStore()
    identities = IdentityStore(engine)
    return ServiceContext(
        config=config,
        engine=engine,
        blobs=blobs,
        locks=locks,
        metrics=metrics,
        identities=identities,
        uploads=UploadService(config, engine, blobs, identities),
        consumption=ConsumptionEngine(engine, blobs, locks, metrics),
        registration=RegistrationService(identities, config.allow_register),
    )


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context
