from logging import getLogger

from celery import shared_task
from django.apps import apps
from django.utils import timezone

logger = getLogger(__name__)


@shared_task(name='promotion_schedule_sync')
def sync_promotion_schedule():
    """
    Switch promotions on when their window opens and off once it closes.
    """
    PromotionModelRef = apps.get_model('shop', 'Promotion')
    now = timezone.now()
    activated = PromotionModelRef.objects.due_for_activation(now).update(
        is_active=True, modified=now)
    deactivated = PromotionModelRef.objects.due_for_deactivation(now).update(
        is_active=False, modified=now)
    if activated or deactivated:
        logger.info(
            f'Promotion schedule: {activated} activated, '
            f'{deactivated} deactivated')
    return {'activated': activated, 'deactivated': deactivated}
