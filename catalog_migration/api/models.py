"""Pydantic models for API requests and responses."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


# Request Models
class MigrationStartRequest(BaseModel):
    dry_run: bool = False
    skip_images: bool = False


# Response Models
class MigrationStartResponse(BaseModel):
    migration_id: str
    status: str
    dry_run: bool
    skip_images: bool
    message: str = "Migration started"


class MigrationStatusResponse(BaseModel):
    status: str
    migration_id: Optional[str] = None
    dry_run: Optional[bool] = None
    skip_images: Optional[bool] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ConnectionCheckResponse(BaseModel):
    status: str
    store: str
    host: str
    database: str
