from datetime import date

from flask import request, current_app
from flask_login import login_required, current_user

from . import announcements_bp
from .. import csrf_required
from ..api_utils import api_success, request_payload
from ..decorators import capability_required
from ..roles import Capability, has_capability
from .. import data_access as dal


@announcements_bp.route("", methods=["GET"])
@login_required
@capability_required(Capability.VIEW_ANNOUNCEMENTS)
def announcements_list():
    today = date.today()
    manager = has_capability(current_user.role, Capability.MANAGE_ANNOUNCEMENTS)
    # Managers see the whole board, including expired and other audiences' posts
    rows = dal.list_announcements(role=None if manager else current_user.role, today=today)
    data = []
    for announcement in rows:
        item = announcement.to_dict()
        item["expired"] = bool(announcement.expires_at and announcement.expires_at < today)
        data.append(item)
    return api_success(data, meta={"count": len(data), "can_manage": manager})


@announcements_bp.route("", methods=["POST"])
@login_required
@capability_required(Capability.MANAGE_ANNOUNCEMENTS)
@csrf_required
def announcements_create():
    announcement = dal.create_announcement(request_payload(request), current_user.id)
    return api_success(announcement.to_dict(), status=201)


@announcements_bp.route("/<int:announcement_id>", methods=["DELETE"])
@login_required
@capability_required(Capability.MANAGE_ANNOUNCEMENTS)
@csrf_required
def announcements_delete(announcement_id):
    dal.delete_announcement(announcement_id)
    current_app.logger.info("Announcement %s deleted by user %s", announcement_id, current_user.id)
    return api_success({"deleted": announcement_id})
