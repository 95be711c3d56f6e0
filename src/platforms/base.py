from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Optional, Type

import requests

from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.enums import Platform
from src.specs.common.errors import (
    UpstreamAuthError,
    UpstreamError,
    UpstreamNetworkError,
    UpstreamNotFound,
    UpstreamRateLimited,
    UpstreamTimeout,
)
from src.specs.models.domain import ProjectDraft, SyncConfig
from src.specs.models.raw import RawPlatformItem
from .policy import PlatformPolicy

USER_AGENT = "SmartPortfolio/1.0"
MAX_PER_PAGE = 100


class PlatformClient(ABC):
    """One external platform: fetch raw items, convert them to drafts.

    Fetching goes through ``requests`` on a worker thread so the event loop
    never blocks. ``convert_to_project_draft`` does no I/O.
    """

    platform: ClassVar[Platform]
    display_name: ClassVar[str]
    base_url: ClassVar[str]
    item_model: ClassVar[Type[RawPlatformItem]]
    default_policy: ClassVar[PlatformPolicy]

    def __init__(
        self,
        *,
        access_token: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[Any] = None,
        policy: Optional[PlatformPolicy] = None,
        run_trace_id: Optional[str] = None,
        token_owned_by_user: bool = True,
    ) -> None:
        self.access_token = access_token
        # False when the token is a shared service token rather than the
        # account owner's, so "my items" endpoints must not be used.
        self.token_owned_by_user = token_owned_by_user
        self.api_key = api_key
        self.timeout = timeout
        self.policy = policy or self.default_policy
        self._session = session or requests.Session()
        self._run_trace_id = run_trace_id

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _params(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {k: v for k, v in (params or {}).items() if v is not None}

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        message = f"{self.display_name} API error: {status} {response.reason or ''}".strip()
        name = self.platform.value
        if status == 404:
            raise UpstreamNotFound(name, message, status)
        remaining = response.headers.get("X-RateLimit-Remaining")
        if status == 429 or (status == 403 and remaining == "0"):
            raise UpstreamRateLimited(
                name, message, status, details={"reset": response.headers.get("X-RateLimit-Reset")}
            )
        if status in (401, 403):
            raise UpstreamAuthError(name, message, status)
        raise UpstreamError(name, message, status, details={"body": (response.text or "")[:500]})

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        name = self.platform.value
        try:
            response = self._session.get(
                url, params=self._params(params), headers=self._headers(), timeout=self.timeout
            )
        except requests.Timeout as exc:
            raise UpstreamTimeout(name, f"{self.display_name} API timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise UpstreamNetworkError(name, f"{self.display_name} API unreachable: {exc}") from exc
        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(name, f"{self.display_name} API returned invalid JSON", response.status_code) from exc

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            payload = await asyncio.to_thread(self._get, path, params)
        except UpstreamError as exc:
            log_warning(
                self._run_trace_id,
                f"platform:{self.platform.value}:request_failed",
                path=path,
                code=exc.code,
                status=exc.status,
            )
            raise
        log_info(self._run_trace_id, f"platform:{self.platform.value}:request_ok", path=path)
        return payload

    def _parse_items(self, payload: Any) -> List[RawPlatformItem]:
        if not isinstance(payload, list):
            raise UpstreamError(self.platform.value, f"{self.display_name} API returned an unexpected payload")
        return [self.item_model.model_validate(entry) for entry in payload]

    def _uses_owner_token(self) -> bool:
        return bool(self.access_token) and self.token_owned_by_user

    @staticmethod
    def _per_page(per_page: int) -> int:
        return max(1, min(int(per_page), MAX_PER_PAGE))

    @abstractmethod
    async def get_user_profile(self, username: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_user_items(
        self,
        username: str,
        *,
        sort: Optional[str] = None,
        per_page: int = 50,
        page: Optional[int] = None,
        **platform_options: Any,
    ) -> List[RawPlatformItem]:
        """One page of the user's items in platform-native order."""

    @abstractmethod
    async def get_item(self, item_id: str, *, username: Optional[str] = None) -> RawPlatformItem:
        ...

    @abstractmethod
    def convert_to_project_draft(self, item: RawPlatformItem) -> ProjectDraft:
        ...

    def validate_config(self, config: SyncConfig) -> List[str]:
        return []


__all__ = ["PlatformClient", "MAX_PER_PAGE", "USER_AGENT"]
