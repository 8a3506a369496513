from django.http import FileResponse, Http404
from django.views.decorators.http import require_GET

from .access import is_admin, principal_from_user
from .apps import upload_policy
from .uploads import content_type_for, resolve_stored_file


def _stored_file_response(policy_name: str, file_name: str) -> FileResponse:
    # Only the basename of file_name is ever looked up.
    policy = upload_policy(policy_name)
    path = resolve_stored_file(policy.storage_dir, file_name)
    if path is None:
        raise Http404
    return FileResponse(policy.storage.open(path.name, "rb"), content_type=content_type_for(path.name))


@require_GET
def room_image_view(request, file_name: str):
    """
    Room images are public, but are only reachable through this view;
    the storage area is not mapped to any static route.
    """
    return _stored_file_response("room_images", file_name)


@require_GET
def attachment_view(request, file_name: str):
    if not is_admin(principal_from_user(request.user)):
        raise Http404
    return _stored_file_response("attachments", file_name)
