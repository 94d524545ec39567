from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.utils.translation import gettext_lazy as _
from rest_framework import exceptions, serializers
from rest_framework.authtoken.models import Token

from shop.models import CreditTransaction, CustomerCredit


class RegisterSerializer(serializers.ModelSerializer):
    token = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = (
            'id', 'email', 'password', 'first_name', 'last_name', 'phone',
            'token', )
        extra_kwargs = {
            'password': {'write_only': True}
        }

    @staticmethod
    def validate_password(password):
        validate_password(password)
        return password

    @staticmethod
    def validate_email(email):
        if get_user_model().objects.filter(email__iexact=email).exists():
            raise exceptions.ValidationError('A user already exists with this email')
        return email.lower()

    def get_token(self, obj):
        token, created = Token.objects.get_or_create(user=obj)
        return token.key

    def create(self, validated_data):
        return get_user_model().objects.create_user(**validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(
        style={'input_type': 'password'}, trim_whitespace=False,
        write_only=True)

    def validate(self, attrs):
        user = authenticate(
            request=self.context.get('request'),
            username=attrs['email'], password=attrs['password'])
        if user is None:
            raise exceptions.ValidationError(
                _('Unable to log in with provided credentials.'))
        if not user.is_active:
            raise exceptions.ValidationError(_('User account is disabled.'))
        attrs['user'] = user
        return attrs


class ProfileSerializer(serializers.ModelSerializer):
    available_credit = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = get_user_model()
        fields = (
            'id', 'email', 'first_name', 'last_name', 'phone',
            'address_line_1', 'city', 'postal_code', 'is_staff',
            'date_joined', 'available_credit', )
        read_only_fields = ('id', 'email', 'is_staff', 'date_joined', )


class CreditTransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(
        source='order.order_number', read_only=True, default=None)

    class Meta:
        model = CreditTransaction
        fields = (
            'id', 'transaction_type', 'amount', 'description', 'order',
            'order_number', 'supplier_order', 'created', )


class CustomerCreditSerializer(serializers.ModelSerializer):
    transactions = serializers.SerializerMethodField()

    class Meta:
        model = CustomerCredit
        fields = (
            'total_credit_amount', 'available_credit_amount', 'transactions', )

    def get_transactions(self, obj):
        return CreditTransactionSerializer(
            obj.user.credit_transactions.select_related('order'),
            many=True).data
