"""Persistence and subscription collaborators for the sync pipeline.

Two backends share one interface: Cosmos DB when configured, otherwise a
JSON file under the runtime state directory (local development and tests).
"""
from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from src.shared.config import AppConfig
from src.shared.cosmos_client import CosmosDBClient
from src.shared.logging_utils import info as log_info
from src.specs.common.enums import Platform
from src.specs.models.domain import PortfolioRecord, ProjectDraft
from src.specs.models.persistence import ProjectDocument
from src.specs.models.plans import SubscriptionRecord, UsageSnapshot

PORTFOLIOS_CONTAINER = "portfolios"
PROJECTS_CONTAINER = "projects"
SUBSCRIPTIONS_CONTAINER = "subscriptions"


def portfolio_to_document(portfolio: PortfolioRecord) -> Dict[str, Any]:
    """Serialize a portfolio, revealing credential secrets for storage."""
    doc = portfolio.model_dump(mode="json")
    for cred_doc, cred in zip(doc.get("credentials", []), portfolio.credentials):
        cred_doc["accessToken"] = cred.accessToken.get_secret_value() if cred.accessToken else None
        cred_doc["apiKey"] = cred.apiKey.get_secret_value() if cred.apiKey else None
    # Cosmos system properties are regenerated on write
    return {k: v for k, v in doc.items() if not k.startswith("_")}


class PortfolioStore(ABC):
    @abstractmethod
    async def get_portfolio(self, portfolio_id: str) -> Optional[PortfolioRecord]:
        ...

    @abstractmethod
    async def save_portfolio(self, portfolio: PortfolioRecord) -> None:
        ...

    @abstractmethod
    async def list_portfolio_ids(self) -> List[str]:
        ...

    @abstractmethod
    async def upsert_projects(self, portfolio_id: str, drafts: Iterable[ProjectDraft]) -> int:
        """Idempotent on (portfolioId, source, externalId). Returns the number written."""

    @abstractmethod
    async def existing_project_keys(self, portfolio_id: str) -> Set[Tuple[str, str]]:
        ...

    @abstractmethod
    async def list_projects(self, portfolio_id: str) -> List[ProjectDocument]:
        ...

    @abstractmethod
    async def get_usage(self, user_id: str) -> UsageSnapshot:
        """Recount usage from persisted state; never cached."""

    @abstractmethod
    async def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        ...

    @abstractmethod
    async def set_subscription(self, record: SubscriptionRecord) -> None:
        ...

    async def mark_synced(self, portfolio_id: str, platform: Platform, when: datetime) -> None:
        portfolio = await self.get_portfolio(portfolio_id)
        if portfolio is None:
            return
        for cred in portfolio.credentials:
            if cred.platform == platform:
                cred.lastSync = when
        await self.save_portfolio(portfolio)


class FilePortfolioStore(PortfolioStore):
    """Single JSON document on disk. Not safe across processes."""

    def __init__(self, state_dir: Path):
        self._state_dir = Path(state_dir)
        self._state_file = self._state_dir / "portfolios.json"

    def _read_all(self) -> Dict[str, Dict[str, Any]]:
        data: Dict[str, Dict[str, Any]] = {}
        if self._state_file.exists():
            data = json.loads(self._state_file.read_text(encoding="utf-8"))
        for section in (PORTFOLIOS_CONTAINER, PROJECTS_CONTAINER, SUBSCRIPTIONS_CONTAINER):
            data.setdefault(section, {})
        return data

    def _write_all(self, data: Dict[str, Dict[str, Any]]) -> None:
        self._state_dir.mkdir(parents=True, exist_ok=True)
        self._state_file.write_text(json.dumps(data), encoding="utf-8")

    async def get_portfolio(self, portfolio_id: str) -> Optional[PortfolioRecord]:
        doc = self._read_all()[PORTFOLIOS_CONTAINER].get(portfolio_id)
        return PortfolioRecord.model_validate(doc) if doc else None

    async def save_portfolio(self, portfolio: PortfolioRecord) -> None:
        data = self._read_all()
        data[PORTFOLIOS_CONTAINER][portfolio.id] = portfolio_to_document(portfolio)
        self._write_all(data)

    async def list_portfolio_ids(self) -> List[str]:
        return sorted(self._read_all()[PORTFOLIOS_CONTAINER].keys())

    async def upsert_projects(self, portfolio_id: str, drafts: Iterable[ProjectDraft]) -> int:
        data = self._read_all()
        written = 0
        for draft in drafts:
            doc = ProjectDocument.from_draft(portfolio_id, draft)
            data[PROJECTS_CONTAINER][doc.id] = doc.model_dump(mode="json")
            written += 1
        self._write_all(data)
        log_info(None, "store:file:upsert_projects", portfolioId=portfolio_id, count=written)
        return written

    async def existing_project_keys(self, portfolio_id: str) -> Set[Tuple[str, str]]:
        return {(p.source.value, p.externalId) for p in await self.list_projects(portfolio_id)}

    async def list_projects(self, portfolio_id: str) -> List[ProjectDocument]:
        docs = self._read_all()[PROJECTS_CONTAINER].values()
        return [ProjectDocument.model_validate(d) for d in docs if d.get("portfolioId") == portfolio_id]

    async def get_usage(self, user_id: str) -> UsageSnapshot:
        data = self._read_all()
        owned = [p for p in data[PORTFOLIOS_CONTAINER].values() if p.get("userId") == user_id]
        owned_ids = {p["id"] for p in owned}
        projects = sum(1 for d in data[PROJECTS_CONTAINER].values() if d.get("portfolioId") in owned_ids)
        integrations = sum(len(p.get("credentials") or []) for p in owned)
        return UsageSnapshot(projects=projects, integrations=integrations, portfolios=len(owned))

    async def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        doc = self._read_all()[SUBSCRIPTIONS_CONTAINER].get(user_id)
        return SubscriptionRecord.model_validate(doc) if doc else None

    async def set_subscription(self, record: SubscriptionRecord) -> None:
        data = self._read_all()
        data[SUBSCRIPTIONS_CONTAINER][record.userId] = record.model_dump(mode="json")
        self._write_all(data)


class CosmosPortfolioStore(PortfolioStore):
    """Containers: portfolios (/id), projects (/portfolioId), subscriptions (/userId)."""

    def __init__(self, client: CosmosDBClient):
        self._client = client

    async def get_portfolio(self, portfolio_id: str) -> Optional[PortfolioRecord]:
        doc = await asyncio.to_thread(self._client.read_item, PORTFOLIOS_CONTAINER, portfolio_id, portfolio_id)
        return PortfolioRecord.model_validate(doc) if doc else None

    async def save_portfolio(self, portfolio: PortfolioRecord) -> None:
        await asyncio.to_thread(self._client.upsert_item, PORTFOLIOS_CONTAINER, portfolio_to_document(portfolio))

    async def list_portfolio_ids(self) -> List[str]:
        return await asyncio.to_thread(
            self._client.query_items, PORTFOLIOS_CONTAINER, "SELECT VALUE c.id FROM c"
        )

    async def upsert_projects(self, portfolio_id: str, drafts: Iterable[ProjectDraft]) -> int:
        written = 0
        for draft in drafts:
            doc = ProjectDocument.from_draft(portfolio_id, draft)
            await asyncio.to_thread(self._client.upsert_item, PROJECTS_CONTAINER, doc.model_dump(mode="json"))
            written += 1
        log_info(None, "cosmos:projects:upsert", portfolioId=portfolio_id, count=written)
        return written

    async def existing_project_keys(self, portfolio_id: str) -> Set[Tuple[str, str]]:
        rows = await asyncio.to_thread(
            self._client.query_items,
            PROJECTS_CONTAINER,
            "SELECT c.source, c.externalId FROM c WHERE c.portfolioId = @pid",
            [{"name": "@pid", "value": portfolio_id}],
            portfolio_id,
        )
        return {(r["source"], r["externalId"]) for r in rows}

    async def list_projects(self, portfolio_id: str) -> List[ProjectDocument]:
        rows = await asyncio.to_thread(
            self._client.query_items,
            PROJECTS_CONTAINER,
            "SELECT * FROM c WHERE c.portfolioId = @pid",
            [{"name": "@pid", "value": portfolio_id}],
            portfolio_id,
        )
        return [ProjectDocument.model_validate(r) for r in rows]

    async def get_usage(self, user_id: str) -> UsageSnapshot:
        owned = await asyncio.to_thread(
            self._client.query_items,
            PORTFOLIOS_CONTAINER,
            "SELECT c.id, ARRAY_LENGTH(c.credentials) AS integrations FROM c WHERE c.userId = @uid",
            [{"name": "@uid", "value": user_id}],
        )
        owned_ids = [p["id"] for p in owned]
        projects = 0
        if owned_ids:
            counts = await asyncio.to_thread(
                self._client.query_items,
                PROJECTS_CONTAINER,
                "SELECT VALUE COUNT(1) FROM c WHERE ARRAY_CONTAINS(@ids, c.portfolioId)",
                [{"name": "@ids", "value": owned_ids}],
            )
            projects = sum(counts)
        integrations = sum(p.get("integrations") or 0 for p in owned)
        return UsageSnapshot(projects=projects, integrations=integrations, portfolios=len(owned))

    async def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        doc = await asyncio.to_thread(self._client.read_item, SUBSCRIPTIONS_CONTAINER, user_id, user_id)
        return SubscriptionRecord.model_validate(doc) if doc else None

    async def set_subscription(self, record: SubscriptionRecord) -> None:
        body = {"id": record.userId, **record.model_dump(mode="json")}
        await asyncio.to_thread(self._client.upsert_item, SUBSCRIPTIONS_CONTAINER, body)


def get_portfolio_store(config: AppConfig) -> PortfolioStore:
    backend = config.storeBackend
    if backend == "auto":
        backend = "cosmos" if config.cosmos_configured else "file"
    if backend == "cosmos":
        client = CosmosDBClient(config.cosmosConnectionString, config.cosmosDbName)
        log_info(None, "store:selected", backend="cosmos", database=config.cosmosDbName)
        return CosmosPortfolioStore(client)
    log_info(None, "store:selected", backend="file", stateDir=str(config.stateDir))
    return FilePortfolioStore(config.stateDir)


__all__ = [
    "PortfolioStore",
    "FilePortfolioStore",
    "CosmosPortfolioStore",
    "get_portfolio_store",
    "portfolio_to_document",
]
