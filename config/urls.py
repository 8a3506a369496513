from django.contrib import admin
from django.urls import include, path
from django.utils.module_loading import autodiscover_modules


# Trigger admin autodiscovery so allauth models are registered before we prune them.
autodiscover_modules("admin", register_to=admin.site)


def unregister_irrelevant_admin_models():
    """Remove Site and social account models from the admin index."""
    from django.contrib.sites.models import Site
    from allauth.socialaccount.models import SocialAccount, SocialApp, SocialToken

    for model in (Site, SocialAccount, SocialApp, SocialToken):
        if admin.site.is_registered(model):
            admin.site.unregister(model)


unregister_irrelevant_admin_models()


urlpatterns = [
    path("admin/", admin.site.urls),
    # Our audited logout shadows allauth's logout route.
    path("accounts/", include("accounts.urls")),
    path("accounts/", include("allauth.urls")),
    path("", include("bookings.urls")),
]
