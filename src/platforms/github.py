from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.specs.common.enums import Platform
from src.specs.models.domain import ProjectDraft
from src.specs.models.raw import GitHubRepository
from .base import PlatformClient
from .policy import GITHUB_POLICY


class GitHubClient(PlatformClient):
    platform = Platform.GITHUB
    display_name = "GitHub"
    base_url = "https://api.github.com"
    item_model = GitHubRepository
    default_policy = GITHUB_POLICY

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github.v3+json"
        return headers

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
    ) -> List[GitHubRepository]:
        params = {
            "type": platform_options.pop("type", "owner"),
            "sort": sort or "updated",
            "per_page": self._per_page(per_page),
            "page": page,
            **platform_options,
        }
        # The owner's token lists their own repositories, private ones included
        path = "/user/repos" if self._uses_owner_token() else f"/users/{username}/repos"
        return self._parse_items(await self._request(path, params))

    async def get_item(self, item_id: str, *, username: Optional[str] = None) -> GitHubRepository:
        full_name = item_id if "/" in item_id else f"{username}/{item_id}"
        return GitHubRepository.model_validate(await self._request(f"/repos/{full_name}"))

    def convert_to_project_draft(self, item: GitHubRepository) -> ProjectDraft:
        policy = self.policy
        tags: List[str] = []
        if item.language:
            tags.append(item.language)
        tags.extend(item.topics[:5])
        tags.append(policy.canonical_tag)
        return ProjectDraft(
            title=item.name,
            description=item.description or f"{item.language or 'Software'} project on GitHub",
            originalDescription=item.description,
            projectUrl=item.html_url,
            sourceUrl=item.html_url,
            tags=tags,
            category=policy.derive_category([item.language]),
            externalId=str(item.id),
            source=self.platform,
            featured=policy.is_featured(item.stargazers_count),
            order=item.stargazers_count,
            createdAt=item.created_at,
            updatedAt=item.updated_at,
        )
