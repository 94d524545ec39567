from faker import Faker

from django.test import TestCase, Client
from django.urls import reverse
from django.contrib.auth import get_user_model
from django.test.utils import override_settings
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase
from rest_framework import status

from shop import factories


User = get_user_model()


class TestBase(TestCase):
    def __init__(self, *args, **kwargs):
        self.user = None
        super().__init__(*args, **kwargs)

    def setUp(self):
        self.client = Client()
        self.raw_password = 'storefront123'
        user, created = User.objects.get_or_create(email='admin@storefront.test')
        if created:
            user.set_password(self.raw_password)
            user.is_active = True
            user.save()
        self.user = user

    def test_root_url(self):
        response = self.client.get(reverse('shop:schema-swagger-ui'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_login(self.user)
        response = self.client.get(reverse('shop:schema-swagger-ui'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)


@override_settings(
    UNITTEST_MODE=True,
    CACHES={"default": {
        "BACKEND": "django.core.cache.backends.dummy.DummyCache"
    }}
)
class AuthenticatedUserTestBase(APITestCase):
    SUPER_USER: bool = False
    fake_factory = Faker()

    def setUp(self):
        """
        Creating and authenticating the user every test runs as
        """
        email = self.fake_factory.unique.email()
        password = self.fake_factory.password()

        if self.SUPER_USER:
            self.user = User.objects.create_superuser(
                email=email, password=password)
        else:
            self.user = User.objects.create_user(
                email=email, password=password, is_active=True
            )
        self.password = password
        self.authenticate(self.user)

    def authenticate(self, user):
        token, _ = Token.objects.get_or_create(user=user)
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + token.key)

    @property
    def fs(self):
        return factories


class AdminUserTestBase(AuthenticatedUserTestBase):
    SUPER_USER = True
