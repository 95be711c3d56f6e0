import uuid
from time import perf_counter

import azure.functions as func

from src.pipeline.portfolio_sync import build_pipeline
from src.shared.http_utils import error_response, json_response, parse_json_body, response_for_error
from src.shared.logging_utils import info as log_info
from src.specs.models.http import SyncRequest


bp = func.Blueprint()


@bp.function_name(name="http_sync_portfolio")
@bp.route(route="integrations/sync", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def http_sync_portfolio(req: func.HttpRequest) -> func.HttpResponse:
    start = perf_counter()
    run_trace_id = None
    try:
        parsed = parse_json_body(req, SyncRequest)
        run_trace_id = parsed.runTraceId or uuid.uuid4().hex
        parsed = parsed.model_copy(update={"runTraceId": run_trace_id})
        log_info(run_trace_id, "sync:http:accepted", portfolioId=parsed.portfolioId, force=parsed.force)

        result = await build_pipeline().sync_portfolio(parsed)
    except Exception as exc:  # pylint: disable=broad-except
        return response_for_error(run_trace_id, "sync:http", exc)

    duration_ms = int((perf_counter() - start) * 1000)
    log_info(run_trace_id, "sync:http:done", durationMs=duration_ms, totalImported=result.totalImported)
    return json_response(result, 200)


@bp.function_name(name="http_sync_status")
@bp.route(route="integrations/sync", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
async def http_sync_status(req: func.HttpRequest) -> func.HttpResponse:
    portfolio_id = (req.params.get("portfolioId") or "").strip()
    if not portfolio_id:
        return error_response("portfolioId query parameter is required", 400, code="INVALID_REQUEST")
    try:
        status = await build_pipeline().get_sync_status(portfolio_id)
    except Exception as exc:  # pylint: disable=broad-except
        return response_for_error(None, "sync:status", exc)
    return json_response(status, 200)
