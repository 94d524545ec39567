import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils.timezone import now

import factory
from factory import fuzzy
from faker import Faker

from shop.constants.status import ATTRIBUTE_TYPE, PROMOTION_TYPE
from shop.models import (
    Attribute, AttributeOption, Category, Order, OrderItem, OrderShipment,
    Product, ProductDraft, ProductImage, ProductPromotion, Promotion,
    PudoLocker, Supplier
)

fake = Faker()
User = get_user_model()


class UserFactory(factory.django.DjangoModelFactory):
    """Create test user."""
    class Meta:
        model = User

    password = factory.django.Password('storefront123')
    last_login = now()
    is_superuser = False
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    email = factory.Sequence(lambda n: f"customer{n}@example.com")
    phone = factory.Faker('msisdn')
    is_staff = False
    is_active = True


class AdminUserFactory(UserFactory):
    email = factory.Sequence(lambda n: f"admin{n}@example.com")
    is_staff = True


class CategoryFactory(factory.django.DjangoModelFactory):
    """ Product category factory """
    class Meta:
        model = Category

    name = factory.Sequence(lambda n: f"Category {n}")
    description = factory.Faker('sentence')
    parent = None


class SupplierFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Supplier

    name = factory.Faker('company')
    email = factory.Faker('company_email')
    website = factory.Faker('url')


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product

    name = factory.Sequence(lambda n: f"Product {n}")
    sku = factory.Sequence(lambda n: f"SKU-{n:05d}")
    description = factory.Faker('paragraph')
    category = factory.SubFactory(CategoryFactory)
    supplier = factory.SubFactory(SupplierFactory)
    price = fuzzy.FuzzyDecimal(50, 500)
    cost_price = factory.LazyAttribute(
        lambda o: (o.price * Decimal('0.6')).quantize(Decimal('0.01')))
    stock = fuzzy.FuzzyInteger(1, 100)
    image_url = factory.Faker('image_url')
    supplier_url = factory.Faker('url')
    is_active = True


class ProductImageFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ProductImage

    product = factory.SubFactory(ProductFactory)
    url = factory.Faker('image_url')
    object_key = factory.Sequence(lambda n: f"products/image-{n}.png")


class AttributeFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Attribute

    name = factory.Sequence(lambda n: f"attribute_{n}")
    display_name = factory.Sequence(lambda n: f"Attribute {n}")
    attribute_type = ATTRIBUTE_TYPE.select


class AttributeOptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AttributeOption

    attribute = factory.SubFactory(AttributeFactory)
    value = factory.Sequence(lambda n: f"option-{n}")


class ProductDraftFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ProductDraft

    created_by = factory.SubFactory(AdminUserFactory)
    name = factory.Sequence(lambda n: f"Draft product {n}")
    slug = factory.LazyAttribute(lambda o: o.name.lower().replace(' ', '-'))
    sku = factory.Sequence(lambda n: f"DRAFT-{n:05d}")
    category = factory.SubFactory(CategoryFactory)
    description = factory.Faker('paragraph')
    regular_price = Decimal('199.99')
    stock_level = 10
    image_urls = factory.LazyFunction(
        lambda: [fake.image_url(), fake.image_url()])
    image_object_keys = factory.LazyAttribute(
        lambda o: [f"drafts/{index}.png" for index, _ in enumerate(o.image_urls)])
    tags = factory.LazyFunction(lambda: ['new', 'summer'])


class PudoLockerFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PudoLocker

    code = factory.Sequence(lambda n: f"CG{n:03d}")
    name = factory.Sequence(lambda n: f"Locker {n}")
    # Sandton City
    latitude = Decimal('-26.1076000')
    longitude = Decimal('28.0567000')
    address = factory.Faker('street_address')
    city = 'Sandton'


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    customer_name = factory.Faker('name')
    customer_email = factory.LazyAttribute(
        lambda o: o.user.email if o.user else fake.email())
    shipping_address = factory.Faker('street_address')
    shipping_city = 'Johannesburg'
    shipping_postal_code = '2196'
    subtotal = Decimal('200.00')
    shipping_cost = Decimal('85.00')
    total_amount = Decimal('285.00')


class OrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory(ProductFactory)
    product_name = factory.LazyAttribute(lambda o: o.product.name)
    product_sku = factory.LazyAttribute(lambda o: o.product.sku)
    quantity = 2
    unit_price = Decimal('100.00')
    total_price = Decimal('200.00')


class OrderShipmentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderShipment

    order = factory.SubFactory(OrderFactory)
    display_label = factory.Sequence(lambda n: f"Parcel {n}")


class PromotionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Promotion

    name = factory.Sequence(lambda n: f"Promotion {n}")
    start_date = factory.LazyFunction(lambda: now() - datetime.timedelta(days=1))
    end_date = factory.LazyFunction(lambda: now() + datetime.timedelta(days=7))
    is_active = True
    promotion_type = PROMOTION_TYPE.percentage
    discount_value = Decimal('10')
    rules = factory.LazyFunction(dict)


class ProductPromotionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ProductPromotion

    promotion = factory.SubFactory(PromotionFactory)
    product = factory.SubFactory(ProductFactory)
