import uuid
import azure.functions as func
import azure.durable_functions as df

from src.pipeline.portfolio_sync import build_pipeline
from src.shared.http_utils import json_response, parse_json_body, response_for_error
from src.shared.logging_utils import info as log_info
from src.specs.models.http import InitialSyncStartResponse, SyncRequest

# Use Durable Functions Blueprint, compatible with FunctionApp.register_functions
bp = df.Blueprint()

_ACTIVITY_RETRY = df.RetryOptions(first_retry_interval_in_milliseconds=5000, max_number_of_attempts=3)


@bp.function_name(name="durable_initial_sync_start")
@bp.route(route="sync/initial", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
@bp.durable_client_input(client_name="client")
async def durable_initial_sync_start(
    req: func.HttpRequest, client: df.DurableOrchestrationClient
) -> func.HttpResponse:
    try:
        parsed = parse_json_body(req, SyncRequest)
    except Exception as exc:  # pylint: disable=broad-except
        return response_for_error(None, "initial_sync:start", exc)

    run_trace_id = parsed.runTraceId or uuid.uuid4().hex
    # First import after connecting an account: always fetch, always enrich
    payload = parsed.model_copy(
        update={"runTraceId": run_trace_id, "force": True, "optimizeSeo": True}
    ).model_dump(mode="json")
    instance_id = await client.start_new("durable_initial_sync", run_trace_id, payload)
    log_info(run_trace_id, "initial_sync:started", portfolioId=parsed.portfolioId, instanceId=instance_id)

    check_status = client.create_check_status_response(req, instance_id)
    resp = InitialSyncStartResponse(accepted=True, runTraceId=run_trace_id, portfolioId=parsed.portfolioId)
    return json_response(resp, 202, headers=dict(check_status.headers))


@bp.function_name(name="durable_initial_sync")
@bp.orchestration_trigger(context_name="context")
def durable_initial_sync(context: df.DurableOrchestrationContext):
    data = context.get_input() or {}
    result = yield context.call_activity_with_retry("durable_sync_portfolio", _ACTIVITY_RETRY, data)
    return result


@bp.function_name(name="durable_sync_portfolio")
@bp.activity_trigger(input_name="data")
async def durable_sync_portfolio(data: dict) -> dict:
    request = SyncRequest.model_validate(data)
    result = await build_pipeline().sync_portfolio(request)
    return result.model_dump(mode="json")
