from django.contrib.auth import get_user_model
from django.utils.decorators import method_decorator
from django.views.decorators.debug import sensitive_post_parameters
from rest_framework import generics, mixins, status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from shop.models import CustomerCredit
from shop.serializers.user import (
    RegisterSerializer,
    LoginSerializer,
    ProfileSerializer,
    CustomerCreditSerializer,
)

sensitive_post_method = sensitive_post_parameters("password")


@method_decorator(sensitive_post_method, name="dispatch")
class Register(generics.CreateAPIView):
    serializer_class = RegisterSerializer
    permission_classes = (AllowAny,)
    model = get_user_model()


@method_decorator(sensitive_post_method, name="dispatch")
class Login(generics.GenericAPIView):
    serializer_class = LoginSerializer
    permission_classes = (AllowAny,)

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        token, _ = Token.objects.get_or_create(user=user)
        return Response({"id": user.id, "token": token.key})


class ProfileAPIView(
    mixins.RetrieveModelMixin, mixins.UpdateModelMixin, generics.GenericAPIView
):
    http_method_names = [
        "get",
        "put",
        "patch",
        "options",
    ]
    queryset = get_user_model().objects.none()
    serializer_class = ProfileSerializer
    permission_classes = (IsAuthenticated,)

    def get_object(self):
        return self.request.user

    def get(self, request, *args, **kwargs):
        return self.retrieve(request, *args, **kwargs)

    def put(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def patch(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)


class CreditsAPIView(generics.RetrieveAPIView):
    serializer_class = CustomerCreditSerializer
    permission_classes = (IsAuthenticated,)

    def get_object(self):
        credit, _ = CustomerCredit.objects.get_or_create(user=self.request.user)
        return credit

    def retrieve(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object())
        return Response(serializer.data, status=status.HTTP_200_OK)
