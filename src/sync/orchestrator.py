from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from src.platforms.base import PlatformClient
from src.platforms.registry import create_client
from src.shared.config import AppConfig
from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.datetime_utils import add_hours, ensure_aware, utc_now
from src.specs.models.domain import SyncConfig, SyncResult, SyncSettings
from src.specs.models.raw import RawPlatformItem

ClientFactory = Callable[[SyncConfig], PlatformClient]


def passes_filters(item: RawPlatformItem, settings: SyncSettings) -> bool:
    """Settings-driven filtering on a raw item, before conversion."""
    if item.is_archived:
        return False
    if settings.excludeForked and item.is_fork:
        return False
    minimum = getattr(settings, item.min_popularity_setting, 0) or 0
    return item.popularity >= minimum


def is_due(last_sync: Optional[datetime], settings: SyncSettings, now: Optional[datetime] = None) -> bool:
    if last_sync is None:
        return True
    now = ensure_aware(now or utc_now())
    return now >= add_hours(last_sync, settings.syncInterval)


class ProjectSyncService:
    """Fans a batch of sync configs out to platform clients.

    Failures stay inside the platform's SyncResult; nothing raised by one
    platform reaches the caller or the other platforms.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        client_factory: Optional[ClientFactory] = None,
        run_trace_id: Optional[str] = None,
    ) -> None:
        self._config = config
        self._run_trace_id = run_trace_id
        self._client_factory = client_factory or (
            lambda sync_config: create_client(sync_config, config, run_trace_id=run_trace_id)
        )

    @staticmethod
    def get_default_settings() -> SyncSettings:
        return SyncSettings()

    is_due = staticmethod(is_due)

    def validate_config(self, sync_config: SyncConfig) -> List[str]:
        return self._check_config(self._client_factory(sync_config), sync_config)

    @staticmethod
    def _check_config(client: PlatformClient, sync_config: SyncConfig) -> List[str]:
        errors: List[str] = []
        if not sync_config.username.strip():
            errors.append("Username is required")
        errors.extend(client.validate_config(sync_config))
        return errors

    async def sync_platform(self, sync_config: SyncConfig) -> SyncResult:
        platform = sync_config.platform
        result = SyncResult(platform=platform)
        try:
            client = self._client_factory(sync_config)
            errors = self._check_config(client, sync_config)
            if errors:
                result.errors.extend(errors)
                log_warning(self._run_trace_id, f"sync:{platform.value}:invalid_config", errors=errors)
                return result

            settings = sync_config.settings
            items = await client.get_user_items(sync_config.username, per_page=settings.maxProjects)
            items = items[: settings.maxProjects]
            result.projectsFound = len(items)

            drafts = [client.convert_to_project_draft(item) for item in items if passes_filters(item, settings)]
            if settings.categories:
                wanted = {c.lower() for c in settings.categories}
                drafts = [d for d in drafts if d.category.lower() in wanted]

            result.projects = drafts
            result.projectsImported = len(drafts)
            stamps = [ensure_aware(d.updatedAt) for d in drafts if d.updatedAt]
            result.latestUpstreamUpdate = max(stamps) if stamps else None
            result.success = True
            log_info(
                self._run_trace_id,
                f"sync:{platform.value}:fetched",
                found=result.projectsFound,
                imported=result.projectsImported,
            )
        except Exception as exc:
            result.errors.append(str(exc) or type(exc).__name__)
            log_warning(
                self._run_trace_id,
                f"sync:{platform.value}:failed",
                error=str(exc),
                code=getattr(exc, "code", type(exc).__name__),
            )
        return result

    async def sync_all_platforms(self, configs: Sequence[SyncConfig]) -> List[SyncResult]:
        """One result per config, in input order, whatever order they finish in."""
        semaphore = asyncio.Semaphore(self._config.maxPlatformConcurrency)
        timeout = self._config.platformTimeout

        async def run_one(sync_config: SyncConfig) -> SyncResult:
            async with semaphore:
                try:
                    return await asyncio.wait_for(self.sync_platform(sync_config), timeout=timeout)
                except asyncio.TimeoutError:
                    name = sync_config.platform.value
                    log_warning(self._run_trace_id, f"sync:{name}:timeout", timeoutSeconds=timeout)
                    return SyncResult(
                        platform=sync_config.platform,
                        errors=[f"{name} sync timed out after {timeout:g}s"],
                    )

        return list(await asyncio.gather(*(run_one(c) for c in configs)))


__all__ = ["ProjectSyncService", "passes_filters", "is_due"]
