import azure.functions as func

from src.limits.plan_limiter import create_plan_limiter_for_user, get_plan_limitation_message
from src.limits.plans import get_plan
from src.shared.config import get_config
from src.shared.http_utils import error_response, json_response, parse_json_body, response_for_error
from src.shared.portfolio_store import get_portfolio_store
from src.specs.models.http import (
    CheckLimitationRequest,
    CheckLimitationResponse,
    LimitationStatusResponse,
    UsageInfo,
)


bp = func.Blueprint()


@bp.function_name(name="http_check_limitation")
@bp.route(route="plan/check-limitation", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def http_check_limitation(req: func.HttpRequest) -> func.HttpResponse:
    try:
        parsed = parse_json_body(req, CheckLimitationRequest)
        limiter = await create_plan_limiter_for_user(parsed.userId, get_portfolio_store(get_config()))
        decision = await limiter.can_perform_action(parsed.action, parsed.quantity)
    except Exception as exc:  # pylint: disable=broad-except
        return response_for_error(None, "quota:check", exc)

    resp = CheckLimitationResponse(
        allowed=decision.allowed,
        reason=decision.reason,
        upgradeRequired=not decision.allowed,
        currentPlan=get_plan(limiter.plan_id).name,
        usage=UsageInfo(current=decision.currentUsage, limit=decision.limit),
        message=None if decision.allowed else get_plan_limitation_message(parsed.action, limiter.plan_id),
    )
    return json_response(resp, 200)


@bp.function_name(name="http_limitation_status")
@bp.route(route="plan/check-limitation", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
async def http_limitation_status(req: func.HttpRequest) -> func.HttpResponse:
    user_id = (req.params.get("userId") or "").strip()
    if not user_id:
        return error_response("userId query parameter is required", 400, code="INVALID_REQUEST")
    try:
        limiter = await create_plan_limiter_for_user(user_id, get_portfolio_store(get_config()))
        status = await limiter.get_limitation_status()
    except Exception as exc:  # pylint: disable=broad-except
        return response_for_error(None, "quota:status", exc)
    return json_response(LimitationStatusResponse(currentPlan=get_plan(limiter.plan_id).name, status=status), 200)
