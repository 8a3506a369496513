from django.urls import path

from .api import (
    admin_audit_api,
    admin_booking_status_api,
    admin_bookings_api,
    admin_delete_booking_api,
    admin_delete_room_api,
    admin_delete_user_api,
    admin_rooms_api,
    admin_stats_api,
    admin_update_booking_api,
    admin_update_room_api,
    admin_users_api,
    bookings_api,
    delete_booking_api,
    rooms_api,
    update_booking_api,
    upload_api,
)
from .views import attachment_view, room_image_view


app_name = "bookings"

urlpatterns = [
    path("api/rooms/", rooms_api, name="rooms_api"),
    path("api/bookings/", bookings_api, name="bookings_api"),
    path("api/bookings/<int:booking_id>/update/", update_booking_api, name="update_booking_api"),
    path("api/bookings/<int:booking_id>/delete/", delete_booking_api, name="delete_booking_api"),
    path("api/uploads/", upload_api, name="upload_api"),
    path("api/admin/stats/", admin_stats_api, name="admin_stats_api"),
    path("api/admin/users/", admin_users_api, name="admin_users_api"),
    path("api/admin/users/<int:user_id>/delete/", admin_delete_user_api, name="admin_delete_user_api"),
    path("api/admin/bookings/", admin_bookings_api, name="admin_bookings_api"),
    path(
        "api/admin/bookings/<int:booking_id>/update/",
        admin_update_booking_api,
        name="admin_update_booking_api",
    ),
    path(
        "api/admin/bookings/<int:booking_id>/delete/",
        admin_delete_booking_api,
        name="admin_delete_booking_api",
    ),
    path(
        "api/admin/bookings/<int:booking_id>/status/",
        admin_booking_status_api,
        name="admin_booking_status_api",
    ),
    path("api/admin/rooms/", admin_rooms_api, name="admin_rooms_api"),
    path("api/admin/rooms/<int:room_id>/update/", admin_update_room_api, name="admin_update_room_api"),
    path("api/admin/rooms/<int:room_id>/delete/", admin_delete_room_api, name="admin_delete_room_api"),
    path("api/admin/audit/", admin_audit_api, name="admin_audit_api"),
    path("rooms/images/<path:file_name>", room_image_view, name="room_image"),
    path("uploads/attachments/<path:file_name>", attachment_view, name="attachment"),
]
