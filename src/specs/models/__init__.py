from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from .http import (
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
    InitialSyncStartResponse,
    CheckLimitationRequest,
    CheckLimitationResponse,
    LimitationStatusResponse,
    ConnectionTestRequest,
    ConnectionTestResponse,
    ErrorResponse,
)
from .domain import (
    SyncSettings,
    PlatformCredential,
    PortfolioRecord,
    SyncConfig,
    ProjectDraft,
    SyncResult,
)
from .plans import PlanLimitations, UsageSnapshot, QuotaDecision, LimitationStatus
from .seo import SeoRequest, EnrichedContent, AiSeoPayload, ContentAnalysis
from .persistence import ProjectDocument


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "sync.request.schema.json": SyncRequest,
    "sync.response.schema.json": SyncResponse,
    "sync.status.response.schema.json": SyncStatusResponse,
    "sync.initial.start.response.schema.json": InitialSyncStartResponse,
    "plan.check.request.schema.json": CheckLimitationRequest,
    "plan.check.response.schema.json": CheckLimitationResponse,
    "plan.status.response.schema.json": LimitationStatusResponse,
    "integration.test.request.schema.json": ConnectionTestRequest,
    "integration.test.response.schema.json": ConnectionTestResponse,
    "error.response.schema.json": ErrorResponse,
    "sync.settings.schema.json": SyncSettings,
    "platform.credential.schema.json": PlatformCredential,
    "portfolio.document.schema.json": PortfolioRecord,
    "project.draft.schema.json": ProjectDraft,
    "project.document.schema.json": ProjectDocument,
    "sync.result.schema.json": SyncResult,
    "plan.limitations.schema.json": PlanLimitations,
    "usage.snapshot.schema.json": UsageSnapshot,
    "quota.decision.schema.json": QuotaDecision,
    "seo.request.schema.json": SeoRequest,
    "seo.enriched.schema.json": EnrichedContent,
    "seo.ai.payload.schema.json": AiSeoPayload,
    "seo.analysis.schema.json": ContentAnalysis,
}

__all__ = [
    "SyncRequest",
    "SyncResponse",
    "SyncStatusResponse",
    "InitialSyncStartResponse",
    "CheckLimitationRequest",
    "CheckLimitationResponse",
    "LimitationStatusResponse",
    "ConnectionTestRequest",
    "ConnectionTestResponse",
    "ErrorResponse",
    "SyncSettings",
    "PlatformCredential",
    "PortfolioRecord",
    "SyncConfig",
    "ProjectDraft",
    "SyncResult",
    "PlanLimitations",
    "UsageSnapshot",
    "QuotaDecision",
    "LimitationStatus",
    "SeoRequest",
    "EnrichedContent",
    "AiSeoPayload",
    "ContentAnalysis",
    "ProjectDocument",
    "SCHEMA_MODELS",
]
