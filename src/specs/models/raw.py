from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RawPlatformItem(BaseModel):
    """A platform-native item as returned by an upstream API.

    Only lives inside a sync call. Unknown upstream fields are kept so that
    conversion code can reach for them without a model change.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Name of the SyncSettings field that bounds ``popularity``.
    min_popularity_setting: ClassVar[str] = "minLikes"

    @property
    def is_archived(self) -> bool:
        return False

    @property
    def is_fork(self) -> bool:
        return False

    @property
    def popularity(self) -> int:
        return 0


class GitHubRepository(RawPlatformItem):
    min_popularity_setting: ClassVar[str] = "minStars"

    id: int
    name: str
    full_name: Optional[str] = None
    description: Optional[str] = None
    html_url: str
    homepage: Optional[str] = None
    language: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    stargazers_count: int = 0
    forks_count: int = 0
    archived: bool = False
    disabled: bool = False
    fork: bool = False

    @property
    def is_archived(self) -> bool:
        return self.archived or self.disabled

    @property
    def is_fork(self) -> bool:
        return self.fork

    @property
    def popularity(self) -> int:
        return self.stargazers_count


class BehanceStats(BaseModel):
    views: int = 0
    appreciations: int = 0
    comments: int = 0


class BehanceProject(RawPlatformItem):
    id: int
    name: str
    url: str
    privacy: Optional[str] = None
    published_on: Optional[datetime] = None
    created_on: Optional[datetime] = None
    modified_on: Optional[datetime] = None
    fields: List[str] = Field(default_factory=list)
    covers: Dict[str, Any] = Field(default_factory=dict)
    stats: BehanceStats = Field(default_factory=BehanceStats)
    tags: List[str] = Field(default_factory=list)
    owners: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def is_archived(self) -> bool:
        return bool(self.privacy) and self.privacy != "public"

    @property
    def popularity(self) -> int:
        return self.stats.appreciations


class DribbbleImages(BaseModel):
    hidpi: Optional[str] = None
    normal: Optional[str] = None
    teaser: Optional[str] = None


class DribbbleShot(RawPlatformItem):
    id: int
    title: str
    description: Optional[str] = None
    html_url: str
    images: DribbbleImages = Field(default_factory=DribbbleImages)
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    animated: bool = False
    likes_count: int = 0
    views_count: int = 0
    comments_count: int = 0

    @property
    def popularity(self) -> int:
        return self.likes_count


__all__ = [
    "RawPlatformItem",
    "GitHubRepository",
    "BehanceStats",
    "BehanceProject",
    "DribbbleImages",
    "DribbbleShot",
]
