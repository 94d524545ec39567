import json
from logging import getLogger

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from shop.exceptions import YocoError
from shop.services.yoco import YOCO_EVENT, handle_payment_succeeded, verify_webhook

logger = getLogger(__name__)


def error_response(e: YocoError):
    return JsonResponse({'error': str(e)}, status=e.status_code or 400)


@require_POST
@csrf_exempt
def yoco_webhook(request, **kwargs):
    try:
        verify_webhook(request.headers, request.body)
    except YocoError as e:
        logger.warning(f'Rejected YoCo webhook: {e}')
        return error_response(e)

    try:
        event = json.loads(request.body)
    except ValueError:
        return JsonResponse({'error': 'Invalid JSON body'}, status=400)

    event_type = event.get('type')
    payment = event.get('payload') or {}
    logger.info(f'YoCo webhook {event.get("id")}: {event_type}')

    if event_type == YOCO_EVENT.payment_succeeded:
        try:
            order, created = handle_payment_succeeded(payment)
        except YocoError as e:
            logger.error(f'Could not create order from payment {payment.get("id")}: {e}')
            return error_response(e)
        if not created:
            return JsonResponse({
                'received': True,
                'processed': False,
                'message': 'Already processed',
                'order_id': order.pk,
            })
        return JsonResponse({
            'received': True,
            'processed': True,
            'order_id': order.pk,
            'order_number': order.order_number,
            'status': 'order_created_and_paid',
        })

    if event_type in (YOCO_EVENT.payment_failed, YOCO_EVENT.payment_refunded):
        metadata = payment.get('metadata') or {}
        logger.warning(
            f'YoCo {event_type} for payment {payment.get("id")} '
            f'(checkout {metadata.get("checkoutId")})')
        return JsonResponse({'received': True, 'processed': False})

    return JsonResponse({
        'received': True,
        'processed': False,
        'message': f'Unhandled event type: {event_type}',
    })
