"""Caller-facing sync: load a portfolio, sync its integrations, apply quotas,
optionally enrich, persist.

Quota exhaustion never aborts the import. Over the project limit, only the
most popular new drafts that fit are kept; without AI quota the enrichment
step is skipped for the whole batch.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Set, Tuple

from src.agents.seo_optimizer import SeoOptimizer
from src.agents.text_generator import FoundryTextGenerator
from src.limits.plan_limiter import PlanLimiter, create_plan_limiter_for_user
from src.platforms.registry import create_client
from src.shared.config import AppConfig, get_config
from src.shared.logging_utils import info as log_info, warning as log_warning, error as log_error
from src.shared.portfolio_store import PortfolioStore, get_portfolio_store
from src.specs.common.datetime_utils import add_hours, utc_now
from src.specs.common.enums import ActionType, Platform
from src.specs.common.errors import InvalidRequestError, ResourceNotFoundError, UpstreamError
from src.specs.models.domain import PortfolioRecord, ProjectDraft, SyncConfig, SyncResult
from src.specs.models.http import (
    ConnectionTestResponse,
    IntegrationSyncStatus,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
)
from src.specs.models.seo import EnrichedContent, SeoRequest
from src.sync.orchestrator import ProjectSyncService, is_due

_PROFILE_KEYS = (
    "login",
    "username",
    "name",
    "display_name",
    "bio",
    "location",
    "company",
    "occupation",
    "followers",
    "followers_count",
    "public_repos",
    "avatar_url",
    "html_url",
    "url",
)


def _apply_enrichment(draft: ProjectDraft, content: EnrichedContent) -> ProjectDraft:
    return draft.model_copy(
        update={
            "description": content.description,
            "seoDescription": content.metaDescription,
            "slug": content.slug,
            "keywords": list(content.keywords),
            "seoConfidence": content.confidence,
        }
    )


class PortfolioSyncPipeline:
    def __init__(
        self,
        store: PortfolioStore,
        config: AppConfig,
        *,
        sync_service: Optional[ProjectSyncService] = None,
        optimizer: Optional[SeoOptimizer] = None,
        session: Optional[Any] = None,
    ) -> None:
        self._store = store
        self._config = config
        self._sync_service = sync_service
        self._optimizer = optimizer
        self._session = session

    def _service(self, run_trace_id: str) -> ProjectSyncService:
        if self._sync_service is not None:
            return self._sync_service
        return ProjectSyncService(
            self._config,
            client_factory=lambda sc: create_client(sc, self._config, session=self._session, run_trace_id=run_trace_id),
            run_trace_id=run_trace_id,
        )

    def _get_optimizer(self, run_trace_id: str) -> SeoOptimizer:
        if self._optimizer is None:
            self._optimizer = SeoOptimizer(
                FoundryTextGenerator.from_config(self._config, run_trace_id=run_trace_id),
                batch_size=self._config.seoBatchSize,
                batch_pause=self._config.seoBatchPause,
                timeout=self._config.enrichmentTimeout,
            )
        self._optimizer.with_run_trace(run_trace_id)
        return self._optimizer

    async def _load(self, portfolio_id: str) -> PortfolioRecord:
        portfolio = await self._store.get_portfolio(portfolio_id)
        if portfolio is None:
            raise ResourceNotFoundError("Portfolio", portfolio_id)
        return portfolio

    async def _apply_project_quota(
        self,
        run_trace_id: str,
        limiter: PlanLimiter,
        portfolio_id: str,
        drafts: List[ProjectDraft],
        errors: List[str],
    ) -> List[ProjectDraft]:
        existing = await self._store.existing_project_keys(portfolio_id)
        new_drafts = [d for d in drafts if d.key not in existing]
        if not new_drafts:
            return drafts
        decision = await limiter.can_perform_action(ActionType.CREATE_PROJECT, len(new_drafts))
        if decision.allowed:
            return drafts
        room = max(0, (decision.limit or 0) - (decision.currentUsage or 0))
        ranked = sorted(new_drafts, key=lambda d: d.order, reverse=True)
        admitted: Set[Tuple[str, str]] = {d.key for d in ranked[:room]}
        errors.append(
            f"{decision.reason}: imported {room} of {len(new_drafts)} new projects"
        )
        log_warning(
            run_trace_id,
            "quota:projects_trimmed",
            portfolioId=portfolio_id,
            requested=len(new_drafts),
            admitted=room,
            limit=decision.limit,
        )
        return [d for d in drafts if d.key in existing or d.key in admitted]

    async def sync_portfolio(self, request: SyncRequest) -> SyncResponse:
        run_trace_id = request.runTraceId or uuid.uuid4().hex
        portfolio = await self._load(request.portfolioId)

        credentials = portfolio.active_credentials()
        if request.platforms:
            wanted = set(request.platforms)
            credentials = [c for c in credentials if c.platform in wanted]
        if not credentials:
            raise InvalidRequestError(
                "No active integrations found for the specified platforms",
                details={"portfolioId": portfolio.id},
            )

        now = utc_now()
        due = []
        skipped: List[Platform] = []
        for cred in credentials:
            if request.force or is_due(cred.lastSync, cred.settings, now):
                due.append(cred)
            else:
                skipped.append(cred.platform)

        log_info(
            run_trace_id,
            "pipeline:sync:start",
            portfolioId=portfolio.id,
            platforms=[c.platform.value for c in due],
            skipped=[p.value for p in skipped],
            optimizeSeo=request.optimizeSeo,
        )

        configs = [
            SyncConfig(
                platform=c.platform,
                username=c.username,
                accessToken=c.accessToken,
                apiKey=c.apiKey,
                settings=c.settings,
            )
            for c in due
        ]
        results: List[SyncResult] = await self._service(run_trace_id).sync_all_platforms(configs)

        errors: List[str] = [f"{r.platform.value}: {e}" for r in results for e in r.errors]

        drafts: List[ProjectDraft] = []
        seen: Set[Tuple[str, str]] = set()
        for result in results:
            for draft in result.projects:
                if draft.key not in seen:
                    seen.add(draft.key)
                    drafts.append(draft)

        limiter = await create_plan_limiter_for_user(portfolio.userId, self._store)
        drafts = await self._apply_project_quota(run_trace_id, limiter, portfolio.id, drafts, errors)
        kept = {d.key for d in drafts}
        for result in results:
            result.projects = [d for d in result.projects if d.key in kept]
            result.projectsImported = len(result.projects)

        projects_optimized = 0
        seo_skipped_reason: Optional[str] = None
        if request.optimizeSeo and drafts:
            decision = await limiter.can_perform_action(ActionType.USE_AI_OPTIMIZATION, len(drafts))
            if not decision.allowed:
                seo_skipped_reason = decision.reason
                log_info(run_trace_id, "pipeline:seo:skipped", reason=decision.reason, planId=limiter.plan_id)
            else:
                seo_requests = [
                    SeoRequest.from_draft(d, tone=request.tone, language=request.language) for d in drafts
                ]
                enriched = await self._get_optimizer(run_trace_id).batch_optimize(seo_requests)
                drafts = [_apply_enrichment(d, e) for d, e in zip(drafts, enriched)]
                projects_optimized = len(enriched)
                log_info(
                    run_trace_id,
                    "pipeline:seo:done",
                    optimized=projects_optimized,
                    ai=sum(1 for e in enriched if e.source == "ai"),
                )

        total_imported = 0
        persisted = True
        if drafts:
            try:
                total_imported = await self._store.upsert_projects(portfolio.id, drafts)
            except Exception as exc:
                persisted = False
                errors.append(f"Failed to save projects: {exc}")
                log_error(run_trace_id, "pipeline:persist_failed", portfolioId=portfolio.id, error=str(exc))
        if persisted:
            for result in results:
                if not result.success:
                    continue
                try:
                    await self._store.mark_synced(portfolio.id, result.platform, result.lastSync)
                except Exception as exc:
                    errors.append(f"{result.platform.value}: Failed to record sync time: {exc}")
                    log_error(
                        run_trace_id,
                        "pipeline:mark_synced_failed",
                        portfolioId=portfolio.id,
                        platform=result.platform.value,
                        error=str(exc),
                    )

        response = SyncResponse(
            success=any(r.success for r in results) or not results,
            runTraceId=run_trace_id,
            portfolioId=portfolio.id,
            totalImported=total_imported,
            projectsOptimized=projects_optimized,
            results=results,
            skipped=skipped,
            errors=errors or None,
            seoSkippedReason=seo_skipped_reason,
        )
        log_info(
            run_trace_id,
            "pipeline:sync:done",
            portfolioId=portfolio.id,
            totalImported=total_imported,
            errors=len(errors),
        )
        return response

    async def get_sync_status(self, portfolio_id: str) -> SyncStatusResponse:
        portfolio = await self._load(portfolio_id)
        integrations = [
            IntegrationSyncStatus(
                platform=c.platform,
                username=c.username,
                lastSync=c.lastSync,
                isActive=c.isActive,
                nextSync=add_hours(c.lastSync, c.settings.syncInterval) if c.lastSync else None,
            )
            for c in portfolio.credentials
        ]
        return SyncStatusResponse(portfolioId=portfolio.id, integrations=integrations)

    async def test_connection(self, platform: Platform, username: str) -> ConnectionTestResponse:
        """Fetch the profile and up to three items with the process-wide credentials."""
        client = create_client(
            SyncConfig(platform=platform, username=username), self._config, session=self._session
        )
        problems = client.validate_config(SyncConfig(platform=platform, username=username))
        if problems:
            return ConnectionTestResponse(success=False, error="; ".join(problems))
        try:
            profile = await client.get_user_profile(username)
            items = await client.get_user_items(username, per_page=3)
        except UpstreamError as exc:
            log_warning(None, "pipeline:test_connection:failed", platform=platform.value, code=exc.code)
            return ConnectionTestResponse(
                success=False,
                error=f"Unable to find {client.display_name} user or projects: {exc}",
            )
        samples: List[Dict[str, Any]] = []
        for item in items[:3]:
            draft = client.convert_to_project_draft(item)
            samples.append(
                {
                    "title": draft.title,
                    "description": draft.description,
                    "url": draft.projectUrl,
                    "category": draft.category,
                    "popularity": item.popularity,
                }
            )
        profile_summary = {k: profile[k] for k in _PROFILE_KEYS if isinstance(profile, dict) and k in profile}
        return ConnectionTestResponse(
            success=True,
            data={"profile": profile_summary, "sampleProjects": samples},
        )


def build_pipeline(config: Optional[AppConfig] = None) -> PortfolioSyncPipeline:
    """Pipeline over the configured store, as used by the Functions entrypoints."""
    config = config or get_config()
    return PortfolioSyncPipeline(get_portfolio_store(config), config)


__all__ = ["PortfolioSyncPipeline", "build_pipeline"]
