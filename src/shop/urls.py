from django.urls import path, include, re_path

from rest_framework_nested import routers
from rest_framework import permissions
from rest_framework.authentication import SessionAuthentication
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

from . import views

app_name = "shop"


schema_view = get_schema_view(
    openapi.Info(
        title="Storefront API",
        default_version="v1",
        description="Storefront catalogue, checkout and back-office API",
        license=openapi.License(name="BSD License"),
    ),
    public=True,
    permission_classes=(permissions.IsAuthenticated,),
    authentication_classes=(SessionAuthentication,),
)


# USER
urlpatterns = [
    # Auth
    path("auth/register", views.Register.as_view(), name="register"),
    path("auth/login", views.Login.as_view(), name="login"),
    # Users
    re_path(r"^profile$", views.ProfileAPIView.as_view(), name="profile_view"),
    path("credits/", views.CreditsAPIView.as_view(), name="credits"),
]

# CATALOG
router = routers.SimpleRouter()
router.register("products", views.ProductViewSet, basename="product")
router.register("categories", views.CategoryViewSet, basename="category")
router.register("suppliers", views.SupplierViewSet, basename="supplier")
router.register("attributes", views.AttributeViewSet, basename="attribute")
router.register("drafts", views.ProductDraftViewSet, basename="draft")

options_router = routers.NestedSimpleRouter(
    router, r"attributes", lookup="attribute")
options_router.register(
    r"options", views.AttributeOptionViewSet, basename="attribute-option")

# Customer orders
router.register("orders", views.OrderViewSet, basename="order")

# Back-office orders
router.register("admin/orders", views.AdminOrderViewSet, basename="admin-order")
router.register(
    "supplier-orders", views.SupplierOrderViewSet, basename="supplier-order")

shipments_router = routers.NestedSimpleRouter(
    router, r"admin/orders", lookup="order")
shipments_router.register(
    r"shipments", views.AdminShipmentViewSet, basename="admin-shipment")

# Promotions and delivery
router.register("promotions", views.PromotionViewSet, basename="promotion")
router.register("lockers", views.PudoLockerViewSet, basename="locker")

urlpatterns += [
    re_path(r"^", include(router.urls)),
    re_path(r"^", include(options_router.urls)),
    re_path(r"^", include(shipments_router.urls)),
    path(
        "track/<str:tracking_number>/",
        views.TrackingView.as_view(),
        name="track",
    ),
]

# YOCO - (webhooks/yoco)
urlpatterns += [
    path(
        "checkout/yoco/", views.YocoCheckoutView.as_view(), name="yoco-checkout"),
    path("webhooks/yoco", views.yoco_webhook, name="yoco_webhook"),
]

# SWAGGER
urlpatterns += [
    re_path(
        r"^(?P<format>\.json|\.yaml)$",
        schema_view.without_ui(cache_timeout=0),
        name="schema-json",
    ),
    re_path(
        r"^$", schema_view.with_ui("swagger", cache_timeout=0), name="schema-swagger-ui"
    ),
    re_path(
        r"^redoc/$", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"
    ),
]
