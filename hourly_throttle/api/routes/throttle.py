from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from hourly_throttle.core.decider import ThrottleDecider
from hourly_throttle.core.identity import basic_auth_identity
from hourly_throttle.core.keys import RequestContext, hour_bucket
from hourly_throttle.core.middleware import utcnow
from hourly_throttle.core.policy import Decision
from hourly_throttle.core.rate_limit import get_throttle_decider
from hourly_throttle.schemas.throttle import PingResponse, UsageResponse

router = APIRouter(tags=["Throttle"])


def _usage_subject(request: Request) -> tuple[RequestContext, str | None]:
    """Return the context and identity the middleware recorded.

    Exempt paths skip the middleware, so both are rebuilt from the request
    with the app's clock and identity resolver. A malformed header raises
    ``MalformedIdentity`` here instead of being treated as absent.
    """
    context = getattr(request.state, "throttle_context", None)
    if context is not None:
        return context, getattr(request.state, "throttle_identity", None)

    clock = getattr(request.app.state, "throttle_clock", utcnow)
    resolve = getattr(request.app.state, "identity_resolver", basic_auth_identity)
    context = RequestContext(path=request.url.path, method=request.method, arrived_at=clock())
    return context, resolve(request)


@router.get("/ping", response_model=PingResponse)
async def ping(request: Request) -> PingResponse:
    """Throttled echo endpoint.

    Reaching this handler means the rate limit middleware forwarded the
    request, either within quota or unthrottled.
    """
    result = getattr(request.state, "throttle_result", None)
    decision = result.decision if result is not None else Decision.UNTHROTTLED
    return PingResponse(decision=decision.value)


@router.get("/throttle/usage", response_model=UsageResponse)
def throttle_usage(
    request: Request,
    decider: ThrottleDecider = Depends(get_throttle_decider),
) -> UsageResponse:
    """Report the caller's counter for the current window.

    Declared sync so the store read runs in the thread pool.

    Raises:
        StoreUnavailable: Mapped to 503 by the exception handlers.
        MalformedIdentity: Mapped to 400 when the path is exempt from
            throttling and the header cannot be parsed.
    """
    context, identity = _usage_subject(request)
    limit = decider.policy.requests_per_limit
    window = hour_bucket(context.arrived_at)

    if not identity:
        return UsageResponse(window=window, limit=limit)

    count = decider.inspect(context, identity)
    return UsageResponse(
        window=window,
        limit=limit,
        count=count,
        remaining=decider.policy.remaining(count),
    )
