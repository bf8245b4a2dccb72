from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status
from django.contrib.auth import get_user_model
from .models import RewardTransaction
from exceptions.handlers import InvalidInputException
from testutils.fixtures import create_passenger_user

User = get_user_model()


class RewardPointsModelTest(TestCase):
    """Test cases for the reward point ledger."""

    def setUp(self):
        self.user = create_passenger_user()

    def test_add_reward_points(self):
        """Test that points are credited and recorded."""
        balance = self.user.add_reward_points(24, reason="Booking ABC1234567")
        self.assertEqual(balance, 24)
        self.assertEqual(User.objects.get(pk=self.user.pk).reward_points, 24)

        entry = RewardTransaction.objects.get(user=self.user)
        self.assertEqual(entry.points, 24)
        self.assertEqual(str(entry), "passenger1: +24 (Booking ABC1234567)")

    def test_add_zero_points_is_ignored(self):
        self.assertEqual(self.user.add_reward_points(0), 0)
        self.assertFalse(RewardTransaction.objects.exists())

    def test_deduct_reward_points(self):
        """Test that a deduction leaves a negative ledger entry."""
        self.user.add_reward_points(50)
        balance = self.user.deduct_reward_points(20)
        self.assertEqual(balance, 30)
        self.assertEqual(
            list(RewardTransaction.objects.order_by("id").values_list("points", flat=True)),
            [50, -20],
        )

    def test_deduct_more_than_balance(self):
        """Test that the balance never goes below zero."""
        self.user.add_reward_points(10)
        with self.assertRaises(InvalidInputException):
            self.user.deduct_reward_points(11)
        self.user.refresh_from_db()
        self.assertEqual(self.user.reward_points, 10)
        self.assertEqual(RewardTransaction.objects.count(), 1)


class RegistrationAPITest(APITestCase):
    """Test cases for passenger registration."""

    def setUp(self):
        self.url = reverse('register')
        self.data = {
            'username': 'testuser',
            'email': 'Test@Example.com',
            'mobile_number': '9123456780',
            'password': 'StrongPass123',
            'confirm_password': 'StrongPass123',
            'first_name': 'Test',
            'last_name': 'User',
        }

    def test_user_registration(self):
        """Test that registration creates the user and returns tokens."""
        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('Registration successful', response.data['message'])
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['reward_points'], 0)

        user = User.objects.get(username='testuser')
        self.assertEqual(user.email, 'test@example.com')
        self.assertFalse(user.is_staff)
        self.assertTrue(user.check_password('StrongPass123'))

    def test_duplicate_email(self):
        """Test that an existing email is a conflict."""
        create_passenger_user('existing', email='test@example.com', mobile_number='9000000002')
        response = self.client.post(self.url, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])

    def test_duplicate_username(self):
        create_passenger_user('testuser', mobile_number='9000000002')
        response = self.client.post(self.url, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_mobile_number(self):
        """Test that only 10 digit Indian numbers are accepted."""
        self.data['mobile_number'] = '1234567890'
        response = self.client.post(self.url, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_short_username(self):
        self.data['username'] = 'abc'
        response = self.client.post(self.url, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_password_mismatch(self):
        """Test that mismatched passwords are rejected."""
        self.data['confirm_password'] = 'OtherPass123'
        response = self.client.post(self.url, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(username='testuser').exists())


class LoginAPITest(APITestCase):
    """Test cases for login."""

    def setUp(self):
        self.user = create_passenger_user()
        self.url = reverse('login')

    def test_login_success(self):
        """Test that valid credentials return a token pair."""
        response = self.client.post(
            self.url, {'username': 'passenger1', 'password': 'StrongPass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['tokens'])
        self.assertEqual(response.data['user']['username'], 'passenger1')

        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_login_wrong_password(self):
        response = self.client.post(
            self.url, {'username': 'passenger1', 'password': 'WrongPass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_login_inactive_user(self):
        """Test that deactivated accounts cannot log in."""
        self.user.is_active = False
        self.user.save()
        response = self.client.post(
            self.url, {'username': 'passenger1', 'password': 'StrongPass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_token_authenticates_requests(self):
        """Test that the access token works against a protected endpoint."""
        login = self.client.post(
            self.url, {'username': 'passenger1', 'password': 'StrongPass123'}, format='json'
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['tokens']['access']}")
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ProfileAPITest(APITestCase):
    """Test cases for profile and reward endpoints."""

    def setUp(self):
        self.user = create_passenger_user()
        self.client.force_authenticate(user=self.user)

    def test_get_profile(self):
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'passenger1@example.com')
        self.assertNotIn('password', response.data)

    def test_profile_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_update_profile(self):
        """Test a partial profile update."""
        response = self.client.patch(
            reverse('profile'), {'first_name': 'Asha', 'mobile_number': '9811111111'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['first_name'], 'Asha')
        self.user.refresh_from_db()
        self.assertEqual(self.user.mobile_number, '9811111111')

    def test_update_profile_keeps_own_email(self):
        response = self.client.patch(
            reverse('profile'), {'email': 'passenger1@example.com'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_update_profile_email_taken(self):
        """Test that another user's email cannot be claimed."""
        create_passenger_user('otheruser', mobile_number='9000000003')
        response = self.client.patch(
            reverse('profile'), {'email': 'otheruser@example.com'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_reward_points_cannot_be_set_directly(self):
        self.client.patch(reverse('profile'), {'reward_points': 1000}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.reward_points, 0)

    def test_reward_points_endpoint(self):
        """Test the balance and ledger listing."""
        self.user.add_reward_points(24, reason="Booking ABC1234567")
        response = self.client.get(reverse('reward-points'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reward_points'], 24)
        self.assertEqual(len(response.data['transactions']), 1)
        self.assertEqual(response.data['transactions'][0]['points'], 24)
        self.assertIsNone(response.data['transactions'][0]['pnr'])


class LogoutAPITest(APITestCase):
    """Test cases for logout and refresh token blacklisting."""

    def setUp(self):
        self.user = create_passenger_user()
        login = self.client.post(
            reverse('login'), {'username': 'passenger1', 'password': 'StrongPass123'}, format='json'
        )
        self.refresh = login.data['tokens']['refresh']
        self.client.force_authenticate(user=self.user)

    def test_logout_blacklists_refresh_token(self):
        """Test that a logged out refresh token can no longer be used."""
        response = self.client.post(reverse('logout'), {'refresh': self.refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Successfully logged out.')

        self.client.force_authenticate(user=None)
        refresh = self.client.post(reverse('token_refresh'), {'refresh': self.refresh}, format='json')
        self.assertEqual(refresh.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_twice(self):
        self.client.post(reverse('logout'), {'refresh': self.refresh}, format='json')
        response = self.client.post(reverse('logout'), {'refresh': self.refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_with_invalid_token(self):
        response = self.client.post(reverse('logout'), {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_logout_with_another_users_token(self):
        """Test that a user cannot revoke someone else's session."""
        other = create_passenger_user('otheruser', mobile_number='9000000004')
        self.client.force_authenticate(user=other)
        response = self.client.post(reverse('logout'), {'refresh': self.refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.post(reverse('logout'), {'refresh': self.refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ChangePasswordAPITest(APITestCase):
    """Test cases for changing the password."""

    def setUp(self):
        self.user = create_passenger_user()
        self.client.force_authenticate(user=self.user)
        self.url = reverse('change-password')

    def test_change_password(self):
        """Test that the new password is set and the old one stops working."""
        response = self.client.post(
            self.url, {'old_password': 'StrongPass123', 'new_password': 'BetterPass456'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Password changed successfully.')

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('BetterPass456'))
        self.assertFalse(self.user.check_password('StrongPass123'))

    def test_wrong_current_password(self):
        response = self.client.post(
            self.url, {'old_password': 'WrongPass999', 'new_password': 'BetterPass456'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('StrongPass123'))

    def test_weak_new_password(self):
        """Test that Django's password validators apply."""
        response = self.client.post(
            self.url, {'old_password': 'StrongPass123', 'new_password': '12345678'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('StrongPass123'))

    def test_missing_fields(self):
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
