from django.urls import path
from .views import (
    ChangePasswordView,
    LoginView,
    LogoutView,
    ProfileView,
    RegistrationView,
    RewardPointsView,
)
from rest_framework_simplejwt.views import TokenRefreshView

urlpatterns = [
    path("api/auth/register/", RegistrationView.as_view(), name="register"),
    path("api/auth/login/", LoginView.as_view(), name="login"),
    path("api/auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/auth/logout/", LogoutView.as_view(), name="logout"),

    path("api/profile/", ProfileView.as_view(), name="profile"),
    path("api/profile/change-password/", ChangePasswordView.as_view(), name="change-password"),
    path("api/rewards/", RewardPointsView.as_view(), name="reward-points"),
]
