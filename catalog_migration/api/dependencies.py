"""Request-scoped collaborators, overridable through ``app.dependency_overrides``."""

from typing import Callable

from fastapi import Depends

from ..config import MigrationSettings, load_environment
from ..extractors.base import BaseReader
from ..extractors.mysql_reader import LegacyReader
from ..orchestrator import MigrationOrchestrator
from ..services.status_store import MigrationStatusStore

OrchestratorFactory = Callable[..., MigrationOrchestrator]
ReaderFactory = Callable[[MigrationSettings], BaseReader]


def get_settings() -> MigrationSettings:
    load_environment()
    return MigrationSettings.from_env()


def get_status_store(settings: MigrationSettings = Depends(get_settings)) -> MigrationStatusStore:
    return MigrationStatusStore(settings.output_dir)


def get_orchestrator_factory() -> OrchestratorFactory:
    return MigrationOrchestrator.from_settings


def get_reader_factory() -> ReaderFactory:
    return LegacyReader.from_settings
