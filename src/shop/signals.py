from django.db.models.signals import post_save
from django.dispatch import receiver
from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token

from shop.models import CustomerCredit


@receiver(post_save, sender=get_user_model())
def user_save_hook(sender, instance, created, **kwargs):
    """
    create user auth token and credit balance whenever a user is created
    """
    if created:
        Token.objects.get_or_create(user=instance)
        CustomerCredit.objects.get_or_create(user=instance)
