from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.specs.common.enums import Platform
from src.specs.common.errors import UpstreamAuthError, UpstreamError
from src.specs.models.domain import ProjectDraft, SyncConfig
from src.specs.models.raw import BehanceProject
from .base import PlatformClient
from .policy import BEHANCE_POLICY


class BehanceClient(PlatformClient):
    """Behance v2 API. Every call needs an API key passed as a query parameter."""

    platform = Platform.BEHANCE
    display_name = "Behance"
    base_url = "https://www.behance.net/v2"
    item_model = BehanceProject
    default_policy = BEHANCE_POLICY

    def _params(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = super()._params(params)
        merged["api_key"] = self.api_key
        return merged

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self.api_key:
            raise UpstreamAuthError(self.platform.value, "Behance API key required")
        return await super()._request(path, params)

    def _unwrap(self, payload: Any, key: str) -> Any:
        if not isinstance(payload, dict) or key not in payload:
            raise UpstreamError(self.platform.value, f"Behance API response is missing '{key}'")
        return payload[key]

    async def get_user_profile(self, username: str) -> Dict[str, Any]:
        return self._unwrap(await self._request(f"/users/{username}"), "user")

    async def get_user_items(
        self,
        username: str,
        *,
        sort: Optional[str] = None,
        per_page: int = 50,
        page: Optional[int] = None,
        **platform_options: Any,
    ) -> List[BehanceProject]:
        params = {
            "sort": sort or "published_date",
            "per_page": self._per_page(per_page),
            "page": page,
            **platform_options,
        }
        payload = await self._request(f"/users/{username}/projects", params)
        return self._parse_items(self._unwrap(payload, "projects"))

    async def get_item(self, item_id: str, *, username: Optional[str] = None) -> BehanceProject:
        payload = await self._request(f"/projects/{item_id}")
        return BehanceProject.model_validate(self._unwrap(payload, "project"))

    def convert_to_project_draft(self, item: BehanceProject) -> ProjectDraft:
        policy = self.policy
        stats = item.stats
        description = (
            f"Creative project in {', '.join(item.fields)}. "
            f"{stats.appreciations} appreciations, {stats.views} views."
        )
        return ProjectDraft(
            title=item.name,
            description=description,
            originalDescription=description,
            imageUrl=item.covers.get("404") or item.covers.get("230"),
            projectUrl=item.url,
            tags=[*item.tags[:5], *item.fields[:3], policy.canonical_tag],
            category=policy.derive_category(item.fields),
            externalId=str(item.id),
            source=self.platform,
            featured=policy.is_featured(stats.appreciations),
            order=stats.appreciations + stats.views,
            createdAt=item.created_on,
            updatedAt=item.modified_on,
        )

    def validate_config(self, config: SyncConfig) -> List[str]:
        if not (config.api_key_value() or self.api_key):
            return ["Behance API key required"]
        return []
