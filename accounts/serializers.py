from rest_framework import serializers
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from .models import User, RewardTransaction
from utils.constants import UserMessage
from utils.validators import UserFieldValidators
from exceptions.handlers import InvalidInputException


class RegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for passenger registration.

    Validates uniqueness of username, email and mobile number, the Indian
    mobile number format and password confirmation before the account is
    created.
    """
    password = serializers.CharField(write_only=True, min_length=8)
    confirm_password = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = [
            'username', 'email', 'mobile_number', 'password',
            'confirm_password', 'first_name', 'last_name'
        ]
        extra_kwargs = {
            'username': {'validators': []},
            'email': {'validators': []},
        }

    def validate_email(self, value):
        return UserFieldValidators.validate_email_uniqueness(value)

    def validate_mobile_number(self, value):
        """
        Validates mobile number format and uniqueness.
        """
        UserFieldValidators.validate_mobile_number_format(value)
        return UserFieldValidators.validate_mobile_number_uniqueness(value)

    def validate_username(self, value):
        if len(value) < 5:
            raise InvalidInputException(UserMessage.USERNAME_TOO_SHORT)

        return UserFieldValidators.validate_username_uniqueness(value)

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate(self, data):
        """
        Validates password confirmation.
        """
        if data.get('password') != data.get('confirm_password'):
            raise InvalidInputException(UserMessage.PASSWORD_NOT_MATCH)
        return data

    def create(self, validated_data):
        validated_data.pop('confirm_password', None)
        return User.objects.create_user(**validated_data)


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for user profile data display.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "mobile_number",
            "first_name",
            "last_name",
            "reward_points",
            "created_at",
            "last_login",
        ]
        read_only_fields = ["reward_points", "created_at", "last_login"]


class LoginSerializer(serializers.Serializer):
    """
    Serializer for user authentication and login validation.

    Authenticates the credentials with Django's authenticate() and rejects
    inactive accounts with the same message as bad credentials.
    """

    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(
            username=data.get("username"), password=data.get("password")
        )
        if not user or not user.is_active:
            raise serializers.ValidationError(UserMessage.INVALID_CREDENTIALS)
        data["user"] = user
        return data


class UpdateProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for user profile updates.
    Email and mobile number stay unique across users other than the caller.
    """

    class Meta:
        model = User
        fields = ["first_name", "last_name", "email", "mobile_number"]
        extra_kwargs = {"email": {"validators": []}}

    def validate_email(self, value):
        return UserFieldValidators.validate_email_uniqueness(
            value, context="profile update", exclude_user=self.instance
        )

    def validate_mobile_number(self, value):
        UserFieldValidators.validate_mobile_number_format(value)
        return UserFieldValidators.validate_mobile_number_uniqueness(
            value, context="profile update", exclude_user=self.instance
        )


class RewardTransactionSerializer(serializers.ModelSerializer):
    pnr = serializers.CharField(source="booking.pnr", read_only=True, default=None)

    class Meta:
        model = RewardTransaction
        fields = ["id", "points", "reason", "pnr", "created_at"]


class ChangePasswordSerializer(serializers.Serializer):
    """
    Serializer for password changes.
    The new password goes through Django's password validators.
    """

    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_new_password(self, value):
        validate_password(value, user=self.context.get("user"))
        return value


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()
