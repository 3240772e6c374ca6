"""
Tracking Blueprint — public engagement beacons (no authentication).

Endpoints:
    GET  /api/v1/tracking/email-open/<tracking_id>   1x1 PNG, always 200
    POST /api/v1/tracking/view/<tracking_id>         {proposal_id?, user_agent?, referrer?}
    POST /api/v1/tracking/scroll                     {tracking_id, scroll_percent}
    POST /api/v1/tracking/time-spent                 {tracking_id, time_spent}  (ms)
    POST /api/v1/tracking/click                      {tracking_id, element_type, element_text?,
                                                      element_id?, element_class?}

Callers are mail clients and browser unload handlers that cannot act on
errors, so internal failures are logged and answered with success. Only
malformed input (400) and, on the view beacon, an unknown token or one
presented with another proposal's id (404) are reported. Clicks on an
unknown token are dropped and still answered with success.
"""

import base64
import logging

from flask import Blueprint, Response, jsonify, request

from proposalhub.blueprints import json_body
from proposalhub.core.exceptions import InvalidArgumentError, NotFoundError
from proposalhub.models import db
from proposalhub.services import tracking_service
from proposalhub.utils.errors import E, api_error
from proposalhub.utils.helpers import get_client_ip

logger = logging.getLogger(__name__)

tracking_bp = Blueprint("tracking", __name__, url_prefix="/api/v1/tracking")

TRACKING_PIXEL = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _ok():
    return jsonify({"success": True}), 200


def _swallow(action, tracking_id):
    db.session.rollback()
    logger.exception("Tracking %s failed", action,
                     extra={"tracking_id": tracking_id, "event_type": action})


def _require_tracking_id(data):
    tracking_id = data.get("tracking_id")
    if not tracking_id or not isinstance(tracking_id, str):
        raise InvalidArgumentError("tracking_id is required", field="tracking_id")
    return tracking_id


@tracking_bp.route("/email-open/<tracking_id>", methods=["GET"])
def email_open(tracking_id):
    try:
        tracking_service.record_open(
            tracking_id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=get_client_ip(),
        )
    except Exception:
        _swallow("open", tracking_id)
    return Response(TRACKING_PIXEL, status=200, mimetype="image/png", headers=NO_CACHE_HEADERS)


@tracking_bp.route("/view/<tracking_id>", methods=["POST"])
def proposal_view(tracking_id):
    data = json_body()
    proposal_id = data.get("proposal_id")
    if proposal_id is not None and (isinstance(proposal_id, bool) or not isinstance(proposal_id, int)):
        return api_error(E.INVALID_ARGUMENT, "proposal_id must be an integer")
    try:
        tracking_service.record_view(
            tracking_id,
            proposal_id=proposal_id,
            user_agent=data.get("user_agent") or request.headers.get("User-Agent"),
            ip_address=get_client_ip(),
            referrer=data.get("referrer") or request.referrer,
        )
    except NotFoundError:
        return api_error(E.NOT_FOUND, "Tracking record not found")
    except Exception:
        _swallow("view", tracking_id)
    return _ok()


@tracking_bp.route("/scroll", methods=["POST"])
def scroll_depth():
    data = json_body()
    tracking_id = _require_tracking_id(data)
    try:
        tracking_service.record_scroll_depth(tracking_id, data.get("scroll_percent"))
    except InvalidArgumentError:
        raise
    except Exception:
        _swallow("scroll", tracking_id)
    return _ok()


@tracking_bp.route("/time-spent", methods=["POST"])
def time_spent():
    data = json_body()
    tracking_id = _require_tracking_id(data)
    try:
        tracking_service.record_time_spent(tracking_id, data.get("time_spent"))
    except InvalidArgumentError:
        raise
    except Exception:
        _swallow("time", tracking_id)
    return _ok()


@tracking_bp.route("/click", methods=["POST"])
def click():
    data = json_body()
    tracking_id = _require_tracking_id(data)
    try:
        tracking_service.record_click(
            tracking_id,
            data.get("element_type"),
            element_text=data.get("element_text"),
            element_id=data.get("element_id"),
            element_class=data.get("element_class"),
        )
    except InvalidArgumentError:
        raise
    except Exception:
        _swallow("click", tracking_id)
    return _ok()
