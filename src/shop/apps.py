from logging import getLogger
from django.utils.translation import gettext_lazy as _
from django.apps import AppConfig
logger = getLogger(__name__)


class ShopAppConfig(AppConfig):
    name = 'shop'
    verbose_name = _('shop')

    def ready(self):
        from . import signals
        logger.debug(f"connected {signals.__name__}")
