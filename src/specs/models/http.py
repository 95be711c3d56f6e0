from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.specs.common.enums import ActionType, Platform, SeoLanguage, SeoTone
from .domain import SyncResult
from .plans import LimitationStatus


class SyncRequest(BaseModel):
    """Body of the caller-facing sync entrypoint."""

    portfolioId: str = Field(min_length=1)
    platforms: Optional[List[Platform]] = None
    force: bool = False
    optimizeSeo: bool = False
    tone: SeoTone = SeoTone.PROFESSIONAL
    language: SeoLanguage = SeoLanguage.EN
    runTraceId: Optional[str] = None


class SyncResponse(BaseModel):
    success: bool = True
    runTraceId: str
    portfolioId: str
    totalImported: int = 0
    projectsOptimized: int = 0
    results: List[SyncResult] = Field(default_factory=list)
    skipped: List[Platform] = Field(default_factory=list)
    errors: Optional[List[str]] = None
    seoSkippedReason: Optional[str] = None


class IntegrationSyncStatus(BaseModel):
    platform: Platform
    username: str
    lastSync: Optional[datetime] = None
    isActive: bool
    nextSync: Optional[datetime] = None


class SyncStatusResponse(BaseModel):
    portfolioId: str
    integrations: List[IntegrationSyncStatus] = Field(default_factory=list)


class InitialSyncStartResponse(BaseModel):
    accepted: bool
    runTraceId: str
    portfolioId: str


class CheckLimitationRequest(BaseModel):
    userId: str = Field(min_length=1)
    action: ActionType
    quantity: int = Field(default=1, ge=1)


class UsageInfo(BaseModel):
    current: Optional[int] = None
    limit: Optional[int] = None


class CheckLimitationResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    upgradeRequired: bool
    currentPlan: str
    usage: UsageInfo
    message: Optional[str] = None


class LimitationStatusResponse(BaseModel):
    currentPlan: str
    status: LimitationStatus


class ConnectionTestRequest(BaseModel):
    platform: Platform
    username: str = Field(min_length=1)


class ConnectionTestResponse(BaseModel):
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errorCode: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


__all__ = [
    "SyncRequest",
    "SyncResponse",
    "IntegrationSyncStatus",
    "SyncStatusResponse",
    "InitialSyncStartResponse",
    "CheckLimitationRequest",
    "UsageInfo",
    "CheckLimitationResponse",
    "LimitationStatusResponse",
    "ConnectionTestRequest",
    "ConnectionTestResponse",
    "ErrorResponse",
]
