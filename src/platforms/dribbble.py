from __future__ import annotations

import html
import re
from typing import Any, Dict, List, Optional

from src.specs.common.enums import Platform
from src.specs.models.domain import ProjectDraft
from src.specs.models.raw import DribbbleShot
from .base import PlatformClient
from .policy import DRIBBBLE_POLICY

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def strip_html(text: Optional[str]) -> str:
    """Shot descriptions come back as HTML fragments."""
    if not text:
        return ""
    return _SPACE_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", text))).strip()


class DribbbleClient(PlatformClient):
    platform = Platform.DRIBBBLE
    display_name = "Dribbble"
    base_url = "https://api.dribbble.com/v2"
    item_model = DribbbleShot
    default_policy = DRIBBBLE_POLICY

    async def get_user_profile(self, username: str) -> Dict[str, Any]:
        return await self._request(f"/users/{username}")

    async def get_user_items(
        self,
        username: str,
        *,
        sort: Optional[str] = None,
        per_page: int = 50,
        page: Optional[int] = None,
        **platform_options: Any,
    ) -> List[DribbbleShot]:
        params = {
            "sort": sort or "recent",
            "per_page": self._per_page(per_page),
            "page": page,
            **platform_options,
        }
        path = "/user/shots" if self._uses_owner_token() else f"/users/{username}/shots"
        return self._parse_items(await self._request(path, params))

    async def get_item(self, item_id: str, *, username: Optional[str] = None) -> DribbbleShot:
        return DribbbleShot.model_validate(await self._request(f"/shots/{item_id}"))

    def convert_to_project_draft(self, item: DribbbleShot) -> ProjectDraft:
        policy = self.policy
        description = strip_html(item.description)
        return ProjectDraft(
            title=item.title,
            description=description or "Creative design published on Dribbble",
            originalDescription=item.description,
            imageUrl=item.images.hidpi or item.images.normal,
            projectUrl=item.html_url,
            tags=[*item.tags[:5], policy.canonical_tag, "Design"],
            category=policy.derive_category(item.tags),
            externalId=str(item.id),
            source=self.platform,
            featured=policy.is_featured(item.likes_count),
            order=item.likes_count + item.views_count,
            createdAt=item.published_at,
            updatedAt=item.updated_at,
        )
