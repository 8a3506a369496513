from __future__ import annotations

import json

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from audit.services import client_ip

from .access import principal_from_user
from .apps import upload_policy
from .forms import AdminBookingForm, BookingEditForm, BookingForm, BookingStatusForm, RoomForm
from .models import Booking, BookingStatus, Room
from .services import (
    BookingError,
    ConcurrencyConflict,
    UploadRejected,
    admin_create_booking,
    admin_delete_booking,
    admin_edit_booking,
    all_bookings,
    audit_trail,
    available_rooms,
    catalog,
    create_booking,
    create_room,
    dashboard_stats,
    delete_booking,
    delete_room,
    delete_user,
    edit_booking,
    edit_room,
    list_users,
    update_booking_status,
    upload_attachment,
    visible_bookings,
)


SERVICE_ERRORS = (PermissionDenied, ValidationError, BookingError, ObjectDoesNotExist)


def room_to_dict(room: Room) -> dict:
    return {
        "id": room.id,
        "name": room.name,
        "description": room.description,
        "price_per_night": str(room.price_per_night),
        "max_guests": room.max_guests,
        "room_type": room.room_type,
        "image": room.image_name or None,
        "is_available": room.is_available,
        "version": room.version,
    }


def booking_to_dict(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "user_id": booking.user_id,
        "room_id": booking.room_id,
        "room_name": booking.room.name,
        "service_type": booking.service_type,
        "check_in": booking.check_in.isoformat(),
        "check_out": booking.check_out.isoformat(),
        "status": booking.status,
        "version": booking.version,
    }


def _unauthenticated() -> JsonResponse:
    return JsonResponse({"error": "Authentication required."}, status=401)


def _json_payload(request) -> dict | None:
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _invalid_payload() -> JsonResponse:
    return JsonResponse({"error": "Invalid JSON payload."}, status=400)


def _form_errors(form) -> JsonResponse:
    details = {field: [e["message"] for e in errors] for field, errors in form.errors.get_json_data().items()}
    return JsonResponse({"error": "Validation error.", "details": details, "submitted": dict(form.data.items())}, status=400)


def _validation_details(exc: ValidationError) -> dict:
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return {"__all__": exc.messages}


def _error_response(exc: Exception, submitted: dict | None = None) -> JsonResponse:
    """
    Map a service error to a JSON response. Rejections that leave the caller
    with a form to fix echo the submitted fields back.
    """
    submitted = submitted or {}
    if isinstance(exc, PermissionDenied):
        return JsonResponse({"error": str(exc) or "Forbidden."}, status=403)
    if isinstance(exc, ObjectDoesNotExist):
        return JsonResponse({"error": "Not found."}, status=404)
    if isinstance(exc, ConcurrencyConflict):
        return JsonResponse({"error": str(exc)}, status=409)
    if isinstance(exc, ValidationError):
        return JsonResponse(
            {"error": "Validation error.", "details": _validation_details(exc), "submitted": submitted},
            status=400,
        )
    if isinstance(exc, UploadRejected):
        return JsonResponse({"error": str(exc), "reason": exc.reason.value, "submitted": submitted}, status=400)
    return JsonResponse({"error": str(exc), "submitted": submitted}, status=400)


@require_GET
def rooms_api(request):
    """
    GET /api/rooms/
    Rooms currently open for booking.
    """
    if not request.user.is_authenticated:
        return _unauthenticated()
    return JsonResponse({"rooms": [room_to_dict(r) for r in available_rooms()]})


@require_http_methods(["GET", "POST"])
def bookings_api(request):
    """
    GET  /api/bookings/  own bookings (all bookings for admins)
    POST /api/bookings/  create a booking
    Payload (JSON):
      - room_id: int
      - check_in / check_out: YYYY-MM-DD
      - service_type: str (optional)
    """
    if not request.user.is_authenticated:
        return _unauthenticated()
    principal = principal_from_user(request.user)

    if request.method == "GET":
        try:
            bookings = visible_bookings(principal=principal)
        except PermissionDenied as exc:
            return _error_response(exc)
        return JsonResponse({"bookings": [booking_to_dict(b) for b in bookings]})

    payload = _json_payload(request)
    if payload is None:
        return _invalid_payload()

    form = BookingForm(payload)
    if not form.is_valid():
        return _form_errors(form)

    try:
        booking = create_booking(principal=principal, data=form.to_input(), ip_address=client_ip(request))
    except SERVICE_ERRORS as exc:
        return _error_response(exc, payload)

    return JsonResponse(
        {"success": True, "booking": booking_to_dict(booking), "message": "Booking created successfully."},
        status=201,
    )


@require_POST
def update_booking_api(request, booking_id: int):
    """
    POST /api/bookings/<id>/update/
    Any user_id / room_id in the payload is ignored.
    """
    if not request.user.is_authenticated:
        return _unauthenticated()

    payload = _json_payload(request)
    if payload is None:
        return _invalid_payload()

    form = BookingEditForm(payload)
    if not form.is_valid():
        return _form_errors(form)

    try:
        booking = edit_booking(
            principal=principal_from_user(request.user),
            booking_id=booking_id,
            data=form.to_input(),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc, payload)

    return JsonResponse({"success": True, "booking": booking_to_dict(booking), "message": "Booking updated successfully."})


@require_POST
def delete_booking_api(request, booking_id: int):
    """
    POST /api/bookings/<id>/delete/
    """
    if not request.user.is_authenticated:
        return _unauthenticated()

    try:
        delete_booking(
            principal=principal_from_user(request.user),
            booking_id=booking_id,
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc)

    return JsonResponse({"success": True, "message": "Booking deleted."})


@require_POST
def upload_api(request):
    """
    POST /api/uploads/ (multipart, field "file")
    """
    if not request.user.is_authenticated:
        return _unauthenticated()

    try:
        stored_name = upload_attachment(
            principal=principal_from_user(request.user),
            file=request.FILES.get("file"),
            policy=upload_policy("attachments"),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc)

    return JsonResponse({"success": True, "file": stored_name, "message": "File uploaded successfully!"}, status=201)


# Admin


@require_GET
def admin_stats_api(request):
    if not request.user.is_authenticated:
        return _unauthenticated()
    try:
        stats = dashboard_stats(principal=principal_from_user(request.user))
    except PermissionDenied as exc:
        return _error_response(exc)
    return JsonResponse(stats)


@require_GET
def admin_users_api(request):
    if not request.user.is_authenticated:
        return _unauthenticated()
    try:
        users = list_users(principal=principal_from_user(request.user))
    except PermissionDenied as exc:
        return _error_response(exc)
    return JsonResponse({"users": users})


@require_POST
def admin_delete_user_api(request, user_id: int):
    """
    POST /api/admin/users/<id>/delete/
    Deleting your own account is refused with a 400 and an explanatory error.
    """
    if not request.user.is_authenticated:
        return _unauthenticated()

    try:
        delete_user(principal=principal_from_user(request.user), user_id=user_id, ip_address=client_ip(request))
    except SERVICE_ERRORS as exc:
        return _error_response(exc)

    return JsonResponse({"success": True, "message": "User has been deleted."})


@require_http_methods(["GET", "POST"])
def admin_bookings_api(request):
    """
    GET  /api/admin/bookings/
    POST /api/admin/bookings/  payload as /api/bookings/ plus user_id and optional status
    """
    if not request.user.is_authenticated:
        return _unauthenticated()
    principal = principal_from_user(request.user)

    if request.method == "GET":
        try:
            bookings = all_bookings(principal=principal)
        except PermissionDenied as exc:
            return _error_response(exc)
        return JsonResponse({"bookings": [booking_to_dict(b) for b in bookings]})

    payload = _json_payload(request)
    if payload is None:
        return _invalid_payload()

    form = AdminBookingForm(payload)
    if not form.is_valid():
        return _form_errors(form)

    try:
        booking = admin_create_booking(
            principal=principal,
            user_id=form.cleaned_data["user_id"],
            data=form.to_input(),
            status=form.cleaned_data.get("status") or BookingStatus.PENDING,
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc, payload)

    return JsonResponse({"success": True, "booking": booking_to_dict(booking)}, status=201)


@require_POST
def admin_update_booking_api(request, booking_id: int):
    if not request.user.is_authenticated:
        return _unauthenticated()

    payload = _json_payload(request)
    if payload is None:
        return _invalid_payload()

    form = BookingEditForm(payload)
    if not form.is_valid():
        return _form_errors(form)

    try:
        booking = admin_edit_booking(
            principal=principal_from_user(request.user),
            booking_id=booking_id,
            data=form.to_input(),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc, payload)

    return JsonResponse({"success": True, "booking": booking_to_dict(booking)})


@require_POST
def admin_delete_booking_api(request, booking_id: int):
    if not request.user.is_authenticated:
        return _unauthenticated()

    try:
        admin_delete_booking(
            principal=principal_from_user(request.user),
            booking_id=booking_id,
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc)

    return JsonResponse({"success": True, "message": "Booking deleted."})


@require_POST
def admin_booking_status_api(request, booking_id: int):
    """
    POST /api/admin/bookings/<id>/status/
    Payload (JSON): status (Pending|Confirmed|Cancelled), version (optional)
    """
    if not request.user.is_authenticated:
        return _unauthenticated()

    payload = _json_payload(request)
    if payload is None:
        return _invalid_payload()

    form = BookingStatusForm(payload)
    if not form.is_valid():
        return _form_errors(form)

    try:
        booking = update_booking_status(
            principal=principal_from_user(request.user),
            booking_id=booking_id,
            status=form.cleaned_data["status"],
            expected_version=form.cleaned_data.get("version"),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc, payload)

    return JsonResponse({"success": True, "booking": booking_to_dict(booking)})


@require_http_methods(["GET", "POST"])
def admin_rooms_api(request):
    """
    GET  /api/admin/rooms/  full catalog
    POST /api/admin/rooms/  multipart room fields plus optional "image"
    """
    if not request.user.is_authenticated:
        return _unauthenticated()
    principal = principal_from_user(request.user)

    if request.method == "GET":
        try:
            rooms = catalog(principal=principal)
        except PermissionDenied as exc:
            return _error_response(exc)
        return JsonResponse({"rooms": [room_to_dict(r) for r in rooms]})

    submitted = request.POST.dict()
    form = RoomForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    try:
        room = create_room(
            principal=principal,
            data=form.to_input(),
            image=request.FILES.get("image"),
            policy=upload_policy("room_images"),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc, submitted)

    return JsonResponse({"success": True, "room": room_to_dict(room)}, status=201)


@require_POST
def admin_update_room_api(request, room_id: int):
    if not request.user.is_authenticated:
        return _unauthenticated()

    submitted = request.POST.dict()
    form = RoomForm(request.POST)
    if not form.is_valid():
        return _form_errors(form)

    try:
        room = edit_room(
            principal=principal_from_user(request.user),
            room_id=room_id,
            data=form.to_input(),
            image=request.FILES.get("image"),
            policy=upload_policy("room_images"),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc, submitted)

    return JsonResponse({"success": True, "room": room_to_dict(room)})


@require_POST
def admin_delete_room_api(request, room_id: int):
    if not request.user.is_authenticated:
        return _unauthenticated()

    try:
        delete_room(
            principal=principal_from_user(request.user),
            room_id=room_id,
            policy=upload_policy("room_images"),
            ip_address=client_ip(request),
        )
    except SERVICE_ERRORS as exc:
        return _error_response(exc)

    return JsonResponse({"success": True, "message": "Room deleted."})


@require_GET
def admin_audit_api(request):
    """
    GET /api/admin/audit/?limit=N
    """
    if not request.user.is_authenticated:
        return _unauthenticated()

    limit_str = request.GET.get("limit", "").strip()
    if limit_str and not limit_str.isdigit():
        return JsonResponse({"error": "Invalid limit. Expected an integer."}, status=400)

    try:
        entries = audit_trail(
            principal=principal_from_user(request.user),
            limit=int(limit_str) if limit_str else None,
        )
    except PermissionDenied as exc:
        return _error_response(exc)
    return JsonResponse(
        {
            "entries": [
                {
                    "id": e.id,
                    "user_id": e.user_id,
                    "action": e.action,
                    "details": e.details,
                    "timestamp": e.timestamp.isoformat(),
                    "ip_address": e.ip_address,
                }
                for e in entries
            ]
        }
    )
