from functools import wraps

from django_fsm import TransitionNotAllowed
from rest_framework.response import Response
from rest_framework.status import HTTP_400_BAD_REQUEST

from shop.exceptions import ShopError


def shop_errors_as_400(func):
    """
    Turn domain failures raised inside a view method into a 400 response
    with an `error` message.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ShopError, TransitionNotAllowed) as e:
            return Response({'error': str(e)}, status=HTTP_400_BAD_REQUEST)

    return wrapper
