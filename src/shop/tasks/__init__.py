__all__ = [
    'send_order_confirmation', 'send_order_status_update',
    'send_credit_notification', 'sync_promotion_schedule',
    'sync_pudo_lockers',
]

from .emails import (
    send_order_confirmation, send_order_status_update,
    send_credit_notification,
)
from .promotions import sync_promotion_schedule
from .lockers import sync_pudo_lockers
