from typing import Any, Dict, Optional, Type

from src.shared.config import AppConfig
from src.specs.common.enums import Platform
from src.specs.models.domain import SyncConfig
from .base import PlatformClient
from .behance import BehanceClient
from .dribbble import DribbbleClient
from .github import GitHubClient

PLATFORM_CLIENTS: Dict[Platform, Type[PlatformClient]] = {
    Platform.GITHUB: GitHubClient,
    Platform.BEHANCE: BehanceClient,
    Platform.DRIBBBLE: DribbbleClient,
}


def create_client(
    sync_config: SyncConfig,
    config: AppConfig,
    *,
    session: Optional[Any] = None,
    run_trace_id: Optional[str] = None,
) -> PlatformClient:
    """Build the client for ``sync_config.platform``.

    Credential values on the sync config win over process-wide keys.
    """
    client_cls = PLATFORM_CLIENTS[sync_config.platform]
    fallback_token = {
        Platform.GITHUB: config.githubToken,
        Platform.DRIBBBLE: config.dribbbleAccessToken,
    }.get(sync_config.platform)
    api_key = sync_config.api_key_value()
    if sync_config.platform == Platform.BEHANCE:
        api_key = api_key or config.behanceApiKey
    own_token = sync_config.access_token_value()
    return client_cls(
        access_token=own_token or fallback_token,
        api_key=api_key,
        timeout=config.httpTimeout,
        session=session,
        run_trace_id=run_trace_id,
        token_owned_by_user=bool(own_token),
    )


__all__ = ["PLATFORM_CLIENTS", "create_client"]
