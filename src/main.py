"""
Lambda Handler - HTTP entry point for the ANMC admin back office

Routes API Gateway proxy events to the booking list, approval workflow and
statistics, enforcing the role policy on every protected route.
"""

import json
import os
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import boto3

from src.auth.permissions import Capability, PermissionPolicy, Role, parse_groups, role_from_groups
from src.bookings.approval import (
    BOOKINGS_COLLECTION,
    FAILED_MESSAGE,
    NOT_FOUND_MESSAGE,
    ApprovalOutcome,
    BookingApprovalService,
)
from src.bookings.stats import inventory_stats, summarize_bookings
from src.bookings.view import BookingListController
from src.config.settings import DEFAULT_REGION, Settings, setup_logging_redaction
from src.database.dynamodb_client import DynamoRecordStore
from src.database.exceptions import RecordStoreError
from src.domain.booking import Booking
from src.notifications.notifier import (
    CompositeNotifier,
    NotificationCollector,
    Notifier,
    SlackNotifier,
)
from src.notifications.slack_service import SlackWebhookClient
from src.utils.logger import get_logger, mask_email
from src.utils.timezone import today_local

logger = get_logger(__name__)

# AWS resources (initialized on cold start)
dynamodb = boto3.resource("dynamodb", region_name=os.getenv("AWS_REGION", DEFAULT_REGION))

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "Origin, X-Requested-With, Content-Type, Accept, Authorization, Cache-Control"
    ),
    "Access-Control-Allow-Methods": "DELETE, GET, OPTIONS, POST, PUT",
}

STAGE_PREFIX = "/dev"

_redaction_configured = False


class HttpError(Exception):
    """Request failure carrying the HTTP status to return."""

    def __init__(self, status_code: int, message: str, **details: Any):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


@dataclass
class Principal:
    role: Role
    subject: Optional[str] = None
    email: Optional[str] = None
    groups: List[str] = field(default_factory=list)


@dataclass
class RequestContext:
    """Per-invocation collaborators handed to route handlers."""

    event: Dict[str, Any]
    settings: Settings
    policy: PermissionPolicy
    principal: Principal
    store: DynamoRecordStore
    collector: NotificationCollector
    notifier: Notifier
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def capabilities(self):
        return self.policy.allowed_actions(self.principal.role)


def resolve_principal(event: Dict[str, Any]) -> Principal:
    """Build the caller from the Cognito authorizer claims, if any."""
    request_context = event.get("requestContext") or {}
    authorizer = request_context.get("authorizer") or {}
    claims = authorizer.get("claims") or {}

    subject = claims.get("sub")
    groups = parse_groups(claims.get("cognito:groups"))
    role = role_from_groups(groups, authenticated=bool(subject))
    return Principal(role=role, subject=subject, email=claims.get("email"), groups=groups)


def normalize_path(event: Dict[str, Any]) -> str:
    """Request path without the stage prefix or trailing slash."""
    path = event.get("path") or event.get("rawPath") or "/"
    if path == STAGE_PREFIX or path.startswith(STAGE_PREFIX + "/"):
        path = path[len(STAGE_PREFIX):] or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def _method(event: Dict[str, Any]) -> str:
    method = event.get("httpMethod")
    if not method:
        method = ((event.get("requestContext") or {}).get("http") or {}).get("method", "GET")
    return method.upper()


def _response(
    status_code: int,
    body: Any,
    content_type: str = "application/json",
) -> Dict[str, Any]:
    headers = {**CORS_HEADERS, "Content-Type": content_type}
    if content_type == "application/json":
        body = json.dumps(body, default=str)
    return {"statusCode": status_code, "headers": headers, "body": body}


def _require(ctx: RequestContext, capability: Capability) -> None:
    if ctx.policy.can(ctx.principal.role, capability):
        return
    if ctx.principal.role == Role.ANONYMOUS:
        raise HttpError(401, "Authentication required")
    raise HttpError(403, "Forbidden", capability=capability.value)


def _notifications(ctx: RequestContext) -> List[Dict[str, Any]]:
    return [n.to_dict() for n in ctx.collector.drain()]


def _controller(ctx: RequestContext) -> BookingListController:
    return BookingListController(
        ctx.store,
        today=lambda: today_local(ctx.settings.timezone),
        capabilities=ctx.capabilities,
    )


# ============================================================
# Route handlers
# ============================================================


def handle_content(ctx: RequestContext) -> Dict[str, Any]:
    logger.info("GET /content called", operation="content", context={"query": _query(ctx.event)})
    return _response(
        200,
        {
            "message": "API is working!",
            "query": _query(ctx.event),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "table": ctx.settings.bookings_table,
        },
    )


def _query(event: Dict[str, Any]) -> Dict[str, str]:
    return event.get("queryStringParameters") or {}


def handle_list_bookings(ctx: RequestContext) -> Dict[str, Any]:
    _require(ctx, Capability.VIEW_BOOKINGS)
    controller = _controller(ctx)
    view = controller.load()
    if view is None:
        return _response(502, {"error": controller.error})
    return _response(200, {"total": controller.total, **view.to_dict()})


def handle_view_bookings(ctx: RequestContext) -> Dict[str, Any]:
    _require(ctx, Capability.VIEW_BOOKINGS)
    controller = _controller(ctx)
    controller.load()
    status_code = 502 if controller.error else 200
    return _response(status_code, controller.render(), content_type="text/html; charset=utf-8")


def handle_my_bookings(ctx: RequestContext) -> Dict[str, Any]:
    _require(ctx, Capability.VIEW_OWN_BOOKINGS)
    email = ctx.principal.email
    if not email:
        raise HttpError(400, "Token has no email claim")

    records = ctx.store.query_by_member_email(BOOKINGS_COLLECTION, email)
    logger.info(
        f"Fetched {len(records)} bookings for member",
        operation="my_bookings",
        context={"member_email": mask_email(email)},
    )
    return _response(200, {"data": [Booking.from_dict(r).to_dict() for r in records]})


def handle_approve(ctx: RequestContext) -> Dict[str, Any]:
    _require(ctx, Capability.APPROVE_BOOKING)
    booking_id = ctx.params["booking_id"]

    controller = _controller(ctx)
    service = BookingApprovalService(ctx.store, ctx.notifier, refresh=controller.load)
    result = service.approve_by_id(booking_id)

    if result.outcome == ApprovalOutcome.APPROVED:
        body: Dict[str, Any] = {
            "booking": result.booking.to_dict(),
            "notifications": _notifications(ctx),
        }
        if controller.view is not None:
            body["view"] = controller.view.to_dict()
        return _response(200, body)

    if result.outcome == ApprovalOutcome.NOT_FOUND:
        return _response(404, {"error": NOT_FOUND_MESSAGE, "notifications": _notifications(ctx)})

    if result.outcome in (ApprovalOutcome.SKIPPED, ApprovalOutcome.IN_FLIGHT):
        return _response(
            409,
            {
                "error": "Booking is not pending",
                "status": result.booking.status if result.booking else None,
            },
        )

    return _response(
        502,
        {"error": FAILED_MESSAGE, "message": result.error, "notifications": _notifications(ctx)},
    )


def handle_booking_stats(ctx: RequestContext) -> Dict[str, Any]:
    _require(ctx, Capability.VIEW_STATS)
    return _response(200, summarize_bookings(ctx.store.scan_all(BOOKINGS_COLLECTION)))


def handle_inventory_stats(ctx: RequestContext) -> Dict[str, Any]:
    stats = inventory_stats(
        ctx.store.scan_all(BOOKINGS_COLLECTION), max_inventory=ctx.settings.max_inventory
    )
    return _response(200, stats.to_dict())


Handler = Callable[[RequestContext], Dict[str, Any]]

ROUTES: List[Tuple[str, "re.Pattern[str]", Handler]] = [
    ("GET", re.compile(r"^/content$"), handle_content),
    ("GET", re.compile(r"^/bookings$"), handle_list_bookings),
    ("GET", re.compile(r"^/bookings/view$"), handle_view_bookings),
    ("GET", re.compile(r"^/bookings/mine$"), handle_my_bookings),
    ("GET", re.compile(r"^/bookings/stats$"), handle_booking_stats),
    ("POST", re.compile(r"^/bookings/(?P<booking_id>[^/]+)/approve$"), handle_approve),
    ("GET", re.compile(r"^/stats$"), handle_inventory_stats),
]


def match_route(method: str, path: str) -> Tuple[Handler, Dict[str, str]]:
    """
    Resolve a handler.

    Raises:
        HttpError: 404 for unknown paths, 405 for known paths with another method
    """
    path_known = False
    for route_method, pattern, handler in ROUTES:
        match = pattern.match(path)
        if not match:
            continue
        path_known = True
        if route_method == method:
            return handler, match.groupdict()

    if path_known:
        raise HttpError(405, "Method not allowed")
    raise HttpError(404, "Not found")


def _build_notifier(settings: Settings, collector: NotificationCollector) -> Notifier:
    if settings.is_slack_enabled():
        return CompositeNotifier(
            collector, SlackNotifier(SlackWebhookClient(settings.slack_webhook_url))
        )
    return collector


def _configure_redaction(settings: Settings) -> None:
    """Attach the secret redaction filter once per container."""
    global _redaction_configured
    if not _redaction_configured:
        setup_logging_redaction(settings)
        _redaction_configured = True


def lambda_handler(event, context):
    """
    Main Lambda handler.

    Args:
        event: API Gateway proxy event
        context: Lambda context

    Returns:
        dict: API Gateway proxy response with CORS headers
    """
    lambda_start_time = time.time()
    event = event or {}
    method = _method(event)
    path = normalize_path(event)

    if method == "OPTIONS":
        return _response(200, {})

    try:
        settings = Settings()
        _configure_redaction(settings)
        principal = resolve_principal(event)

        logger.info(
            "Request received",
            operation="lambda_start",
            context={
                "method": method,
                "path": path,
                "role": principal.role.value,
                "aws_request_id": (
                    getattr(context, "aws_request_id", "local") if context else "local"
                ),
            },
        )

        handler, params = match_route(method, path)
        collector = NotificationCollector()
        ctx = RequestContext(
            event=event,
            settings=settings,
            policy=settings.load_permissions(),
            principal=principal,
            store=DynamoRecordStore(settings.table_names, dynamodb_resource=dynamodb),
            collector=collector,
            notifier=_build_notifier(settings, collector),
            params=params,
        )
        response = handler(ctx)

    except HttpError as e:
        logger.warning(
            f"Request rejected: {e.message}",
            operation="lambda_complete",
            context={"method": method, "path": path, "status": e.status_code},
        )
        return _response(e.status_code, {"error": e.message, **e.details})

    except RecordStoreError as e:
        logger.error(
            "Record store unavailable",
            operation="lambda_complete",
            context={"method": method, "path": path, "error_type": type(e).__name__},
            error=str(e),
        )
        return _response(502, {"error": "Record store unavailable", "message": str(e)})

    except Exception as e:
        logger.error(
            "Lambda execution failed",
            operation="lambda_complete",
            context={"method": method, "path": path, "error_type": type(e).__name__},
            error=str(e),
            duration_ms=(time.time() - lambda_start_time) * 1000,
        )
        return _response(500, {"error": "Internal server error"})

    logger.info(
        "Request completed",
        operation="lambda_complete",
        context={"method": method, "path": path, "status": response["statusCode"]},
        duration_ms=(time.time() - lambda_start_time) * 1000,
    )
    return response
