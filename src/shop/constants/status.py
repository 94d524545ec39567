from model_utils import Choices


class DRAFT_STATUS:
    draft = 'draft'
    in_review = 'in_review'
    ready_to_publish = 'ready_to_publish'
    published = 'published'


class WIZARD_STEP:
    basic_info = 'basic-info'
    description = 'description'
    pricing = 'pricing'
    images = 'images'
    attributes = 'attributes'
    seo = 'seo'

    ALL = (basic_info, description, pricing, images, attributes, seo)
    REQUIRED = (basic_info, pricing, images)


class ORDER_STATUS:
    pending = 'pending'
    confirmed = 'confirmed'
    processing = 'processing'
    shipped = 'shipped'
    delivered = 'delivered'
    cancelled = 'cancelled'


class PAYMENT_STATUS:
    pending = 'pending'
    paid = 'paid'                           # Customer claims EFT was paid
    payment_received = 'payment_received'   # Funds confirmed
    failed = 'failed'


class PAYMENT_METHOD:
    eft = 'eft'
    card = 'card'


class ORDER_EVENT:
    order_created = 'order_created'
    order_created_after_payment = 'order_created_after_payment'
    status_changed = 'status_changed'
    tracking_updated = 'tracking_updated'
    payment_sent = 'payment_sent'
    payment_received = 'payment_received'


class SHIPMENT_STATUS:
    pending = 'pending'
    processing = 'processing'
    shipped = 'shipped'
    delivered = 'delivered'
    cancelled = 'cancelled'


class SUPPLIER_ORDER_STATUS:
    pending = 'pending'
    ordered = 'ordered'
    received = 'received'
    unavailable = 'unavailable'


class URL_VALIDATION_STATUS:
    unchecked = 'unchecked'
    valid = 'valid'
    invalid = 'invalid'


class CREDIT_TRANSACTION_TYPE:
    earned = 'earned'
    used = 'used'
    refund = 'refund'


ATTRIBUTE_TYPE = Choices(
    'text', 'number', 'select', 'multiselect', 'color', 'size', 'boolean')

PROMOTION_TYPE = Choices(
    'percentage', 'fixed_amount', 'buy_x_get_y',
    'quantity_discount', 'category_mix', 'bogo')
