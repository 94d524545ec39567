from logging import getLogger

from celery import shared_task

from shop.services import pudo

logger = getLogger(__name__)


@shared_task(name='pudo_locker_sync')
def sync_pudo_lockers(force: bool = False):
    if not force and not pudo.should_refresh_cache():
        logger.info('PUDO locker cache is fresh, skipping sync')
        return {'synced': 0, 'skipped': True}
    result = pudo.sync_lockers()
    return {'synced': result['synced'], 'skipped': False}
