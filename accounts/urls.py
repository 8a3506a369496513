from django.urls import path

from .views import AppLogoutView


app_name = "accounts"

urlpatterns = [
    path("logout/", AppLogoutView.as_view(), name="logout"),
]
