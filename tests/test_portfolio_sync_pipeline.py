import asyncio
from datetime import timedelta

import pytest

from src.agents.seo_optimizer import SeoOptimizer
from src.pipeline.portfolio_sync import PortfolioSyncPipeline
from src.shared.portfolio_store import FilePortfolioStore
from src.specs.common.datetime_utils import utc_now
from src.specs.common.enums import Platform
from src.specs.common.errors import InvalidRequestError, ResourceNotFoundError
from src.specs.models.domain import PlatformCredential, PortfolioRecord, SyncSettings
from src.specs.models.http import SyncRequest
from src.specs.models.plans import SubscriptionRecord

from conftest import FakeSession, behance_project, github_repo


def _seed(store, *, github_last_sync=None, plan=None):
    portfolio = PortfolioRecord(
        id="p1",
        userId="u1",
        credentials=[
            PlatformCredential(
                platform=Platform.GITHUB,
                username="octo",
                accessToken="own-token",
                lastSync=github_last_sync,
                settings=SyncSettings(syncInterval=24),
            ),
            PlatformCredential(platform=Platform.BEHANCE, username="ana"),
        ],
    )
    asyncio.run(store.save_portfolio(portfolio))
    if plan:
        asyncio.run(store.set_subscription(SubscriptionRecord(userId="u1", planId=plan)))


def _session():
    return FakeSession({
        "/user/repos": [github_repo(i, f"repo-{i}", stargazers_count=i) for i in range(1, 8)],
        "/users/ana/projects": {"projects": [behance_project(1, "poster", ["Branding"])]},
    })


def test_free_plan_trims_new_projects_and_skips_ai(config, store):
    _seed(store)
    session = _session()
    pipeline = PortfolioSyncPipeline(store, config, session=session)
    response = asyncio.run(pipeline.sync_portfolio(SyncRequest(portfolioId="p1", optimizeSeo=True)))

    assert response.success is True
    assert [r.platform for r in response.results] == [Platform.GITHUB, Platform.BEHANCE]
    github, behance = response.results
    assert github.success and github.projectsFound == 7
    assert github.projectsImported == 5
    assert behance.success is False
    assert response.totalImported == 5
    assert "behance: Behance API key required" in response.errors
    assert "Limit of 5 projects reached: imported 5 of 7 new projects" in response.errors
    assert response.projectsOptimized == 0
    assert response.seoSkippedReason == "Limit of 0 AI optimizations this month reached"

    stored = asyncio.run(store.list_projects("p1"))
    assert sorted(p.order for p in stored) == [3, 4, 5, 6, 7]

    portfolio = asyncio.run(store.get_portfolio("p1"))
    assert portfolio.credentials[0].lastSync is not None
    assert portfolio.credentials[1].lastSync is None


def test_pro_plan_enriches_every_project(config, store):
    _seed(store, plan="pro")
    pipeline = PortfolioSyncPipeline(
        store,
        config.model_copy(update={"behanceApiKey": "key"}),
        session=_session(),
        optimizer=SeoOptimizer(batch_pause=0),
    )
    response = asyncio.run(pipeline.sync_portfolio(SyncRequest(portfolioId="p1", optimizeSeo=True)))

    assert response.errors is None
    assert response.totalImported == 8
    assert response.projectsOptimized == 8
    assert response.seoSkippedReason is None
    stored = {p.externalId: p for p in asyncio.run(store.list_projects("p1")) if p.source == Platform.GITHUB}
    assert stored["7"].slug == "repo-7"
    assert stored["7"].seoConfidence == 0.5
    assert stored["7"].seoDescription
    assert stored["7"].title == "repo-7"


def test_resync_updates_without_counting_existing_projects(config, store):
    _seed(store)
    first = asyncio.run(PortfolioSyncPipeline(store, config, session=_session()).sync_portfolio(
        SyncRequest(portfolioId="p1", platforms=[Platform.GITHUB], force=True)
    ))
    assert first.totalImported == 5
    second = asyncio.run(PortfolioSyncPipeline(store, config, session=_session()).sync_portfolio(
        SyncRequest(portfolioId="p1", platforms=[Platform.GITHUB], force=True)
    ))
    # The five stored projects are refreshed; the two new ones still exceed the limit
    assert second.totalImported == 5
    assert len(asyncio.run(store.list_projects("p1"))) == 5


class _FlakyStore(FilePortfolioStore):
    async def mark_synced(self, portfolio_id, platform, when):
        raise OSError("disk full")


def test_failed_sync_timestamp_is_reported_not_raised(config, tmp_path):
    store = _FlakyStore(tmp_path)
    _seed(store)
    response = asyncio.run(PortfolioSyncPipeline(store, config, session=_session()).sync_portfolio(
        SyncRequest(portfolioId="p1", platforms=[Platform.GITHUB], force=True)
    ))
    assert response.success is True
    assert response.totalImported == 5
    assert response.errors == [
        "Limit of 5 projects reached: imported 5 of 7 new projects",
        "github: Failed to record sync time: disk full",
    ]
    assert len(asyncio.run(store.list_projects("p1"))) == 5


def test_not_due_integrations_are_skipped_unless_forced(config, store):
    _seed(store, github_last_sync=utc_now() - timedelta(hours=1))
    session = _session()
    pipeline = PortfolioSyncPipeline(store, config, session=session)

    response = asyncio.run(pipeline.sync_portfolio(SyncRequest(portfolioId="p1", platforms=[Platform.GITHUB])))
    assert response.skipped == [Platform.GITHUB]
    assert response.results == []
    assert response.success is True
    assert session.calls == []

    forced = asyncio.run(pipeline.sync_portfolio(
        SyncRequest(portfolioId="p1", platforms=[Platform.GITHUB], force=True)
    ))
    assert forced.skipped == []
    assert forced.results[0].success


def test_unknown_portfolio_and_no_matching_integrations(config, store):
    _seed(store)
    pipeline = PortfolioSyncPipeline(store, config, session=_session())
    with pytest.raises(ResourceNotFoundError):
        asyncio.run(pipeline.sync_portfolio(SyncRequest(portfolioId="nope")))
    with pytest.raises(InvalidRequestError):
        asyncio.run(pipeline.sync_portfolio(SyncRequest(portfolioId="p1", platforms=[Platform.DRIBBBLE])))


def test_sync_status_reports_next_sync(config, store):
    last = utc_now() - timedelta(hours=2)
    _seed(store, github_last_sync=last)
    status = asyncio.run(PortfolioSyncPipeline(store, config).get_sync_status("p1"))
    github, behance = status.integrations
    assert github.nextSync == last + timedelta(hours=24)
    assert behance.lastSync is None and behance.nextSync is None


def test_connection_test(config, store):
    session = FakeSession({
        "/users/octo": {"login": "octo", "name": "Octo Cat", "public_repos": 4, "email": "hidden"},
        "/users/octo/repos": [github_repo(i, f"r{i}") for i in range(1, 5)],
    })
    pipeline = PortfolioSyncPipeline(store, config, session=session)

    ok = asyncio.run(pipeline.test_connection(Platform.GITHUB, "octo"))
    assert ok.success is True
    assert ok.data["profile"] == {"login": "octo", "name": "Octo Cat", "public_repos": 4}
    assert len(ok.data["sampleProjects"]) == 3
    assert session.calls[-1][1]["per_page"] == 3

    no_key = asyncio.run(pipeline.test_connection(Platform.BEHANCE, "ana"))
    assert no_key.success is False
    assert no_key.error == "Behance API key required"

    missing = asyncio.run(pipeline.test_connection(Platform.DRIBBBLE, "ghost"))
    assert missing.success is False
    assert missing.error.startswith("Unable to find Dribbble user")
