from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView
from django.contrib.auth import update_session_auth_hash
from django.utils import timezone
from .serializers import (
    LoginSerializer,
    UserSerializer,
    UpdateProfileSerializer,
    RegistrationSerializer,
    RewardTransactionSerializer,
    ChangePasswordSerializer,
    LogoutSerializer,
)
from utils.constants import UserMessage
from exceptions.handlers import InvalidInputException
import logging

logger = logging.getLogger("accounts")


def _token_pair(user):
    refresh = RefreshToken.for_user(user)
    return {
        "refresh": str(refresh),
        "access": str(refresh.access_token),
    }


class RegistrationView(APIView):
    """
    Registers a passenger account and returns a JWT pair for it.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"User registered: {user.username} (ID: {user.id})")
        return Response(
            {
                "message": "Registration successful.",
                "tokens": _token_pair(user),
                "user": UserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(TokenObtainPairView):
    """
    Handles user authentication and JWT token generation.

    Extends simplejwt's TokenObtainPairView so the response carries the user
    profile next to the token pair, and stamps last_login.
    """

    serializer_class = LoginSerializer
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])
        logger.info(f"User logged in: {user.username}")

        return Response({
            "tokens": _token_pair(user),
            "user": UserSerializer(user).data,
        })


class LogoutView(APIView):
    """
    Logs the user out by blacklisting their refresh token.

    Access tokens stay valid until they expire, so clients should drop
    them as well.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            token = RefreshToken(serializer.validated_data["refresh"])
        except TokenError:
            raise InvalidInputException(UserMessage.INVALID_REFRESH_TOKEN)
        if str(token.get("user_id")) != str(request.user.pk):
            logger.warning(f"Logout rejected, refresh token not issued to {request.user.username}")
            raise InvalidInputException(UserMessage.INVALID_REFRESH_TOKEN)

        token.blacklist()
        logger.info(f"User logged out: {request.user.username}")
        return Response({"message": UserMessage.LOGOUT_SUCCESS})


class ProfileView(generics.RetrieveUpdateAPIView):
    """
    Retrieves and updates the current user's profile.
    """

    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user

    def update(self, request, *args, **kwargs):
        user = self.get_object()
        serializer = UpdateProfileSerializer(
            user, data=request.data, partial=kwargs.get("partial", False)
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Profile updated for user {user.username}")
        return Response(UserSerializer(user).data)


class RewardPointsView(APIView):
    """
    Returns the reward point balance and the most recent ledger entries.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        user.refresh_from_db(fields=["reward_points"])
        transactions = user.reward_transactions.select_related("booking")[:20]
        return Response(
            {
                "reward_points": user.reward_points,
                "transactions": RewardTransactionSerializer(transactions, many=True).data,
            }
        )


class ChangePasswordView(APIView):
    """
    Changes the current user's password after checking the old one.
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        user = request.user
        serializer = ChangePasswordSerializer(data=request.data, context={"user": user})
        serializer.is_valid(raise_exception=True)

        if not user.check_password(serializer.validated_data["old_password"]):
            logger.warning(f"Password change rejected for {user.username}, wrong current password")
            raise InvalidInputException(UserMessage.CURRENT_PASSWORD_INCORRECT)

        user.set_password(serializer.validated_data["new_password"])
        user.save(update_fields=["password"])
        update_session_auth_hash(request, user)
        logger.info(f"Password changed for user {user.username}")

        return Response({"message": UserMessage.PASSWORD_CHANGED_SUCCESS})
