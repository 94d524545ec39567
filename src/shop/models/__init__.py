from shop.models.user import User, UserManager
from shop.models.catalog import Category, Supplier, Product, ProductImage
from shop.models.attribute import Attribute, AttributeOption, ProductAttribute
from shop.models.draft import ProductDraft, WIZARD_STEP_FIELDS
from shop.models.locker import PudoLocker
from shop.models.order import Order, OrderItem, OrderStatusHistory
from shop.models.shipment import OrderShipment
from shop.models.supplier_order import (
    SupplierOrder, CustomerCredit, CreditTransaction
)
from shop.models.promotion import Promotion, ProductPromotion

__all__ = (
    'User', 'UserManager',
    'Category', 'Supplier', 'Product', 'ProductImage',
    'Attribute', 'AttributeOption', 'ProductAttribute',
    'ProductDraft', 'WIZARD_STEP_FIELDS',
    'PudoLocker',
    'Order', 'OrderItem', 'OrderStatusHistory',
    'OrderShipment',
    'SupplierOrder', 'CustomerCredit', 'CreditTransaction',
    'Promotion', 'ProductPromotion',
)
