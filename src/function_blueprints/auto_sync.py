import json
import uuid
from time import perf_counter
import azure.functions as func

from src.pipeline.portfolio_sync import build_pipeline
from src.shared.config import get_config
from src.shared.logging_utils import info as log_info, error as log_error
from src.shared.portfolio_store import get_portfolio_store
from src.shared.queue_client import enqueue_auto_sync, get_queue_client
from src.specs.models.http import SyncRequest
from src.specs.queue.message import AutoSyncMessage
from src.sync.orchestrator import is_due


bp = func.Blueprint()


@bp.function_name(name="t_auto_sync_scheduler")
@bp.timer_trigger(schedule="0 0 * * * *", arg_name="timer", run_on_startup=False)
async def t_auto_sync_scheduler(timer: func.TimerRequest) -> None:
    """Enqueue one message per portfolio with at least one auto-sync integration due."""
    config = get_config()
    store = get_portfolio_store(config)
    queue_client = None
    enqueued = 0
    for portfolio_id in await store.list_portfolio_ids():
        portfolio = await store.get_portfolio(portfolio_id)
        if portfolio is None:
            continue
        due = [
            c.platform
            for c in portfolio.active_credentials()
            if c.settings.autoSync and is_due(c.lastSync, c.settings)
        ]
        if not due:
            continue
        if queue_client is None:
            queue_client = get_queue_client(config.autoSyncQueue)
        message = AutoSyncMessage(runTraceId=uuid.uuid4().hex, portfolioId=portfolio.id, platforms=due)
        enqueue_auto_sync(queue_client, message)
        enqueued += 1
    log_info(None, "auto_sync:scheduled", enqueued=enqueued, pastDue=bool(getattr(timer, "past_due", False)))


@bp.function_name(name="q_portfolio_sync")
@bp.queue_trigger(
    arg_name="msg",
    queue_name="%AUTO_SYNC_QUEUE%",
    connection="AzureWebJobsStorage",
)
async def q_portfolio_sync(msg: func.QueueMessage) -> None:
    start = perf_counter()
    body = msg.get_body().decode("utf-8")
    q = AutoSyncMessage(**json.loads(body))

    log_info(q.runTraceId, "queue:dequeued", portfolioId=q.portfolioId, messageId=getattr(msg, "id", None))
    request = SyncRequest(
        portfolioId=q.portfolioId,
        platforms=q.platforms,
        force=False,
        optimizeSeo=q.optimizeSeo,
        runTraceId=q.runTraceId,
    )
    try:
        result = await build_pipeline().sync_portfolio(request)
    except Exception as exc:
        log_error(q.runTraceId, "auto_sync:failed", portfolioId=q.portfolioId, error=str(exc))
        raise
    duration_ms = int((perf_counter() - start) * 1000)
    log_info(
        q.runTraceId,
        "auto_sync:done",
        portfolioId=q.portfolioId,
        totalImported=result.totalImported,
        durationMs=duration_ms,
    )
