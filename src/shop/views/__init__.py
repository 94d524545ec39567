from .user import Register, Login, ProfileAPIView, CreditsAPIView
from .catalog import ProductViewSet, CategoryViewSet, SupplierViewSet
from .attribute import AttributeViewSet, AttributeOptionViewSet
from .draft import ProductDraftViewSet
from .order import (
    OrderViewSet, AdminOrderViewSet, AdminShipmentViewSet, TrackingView)
from .supplier_order import SupplierOrderViewSet
from .promotion import PromotionViewSet
from .locker import PudoLockerViewSet
from .checkout import YocoCheckoutView
from .hooks import yoco_webhook
