from django.conf import settings
from django.db.models import Model, ForeignKey, SET_NULL
from django.utils.translation import gettext_lazy as _


class AuthStampedModel(Model):
    """
    An abstract base class model that provides auth information fields.
    The API layer stamps both users on save.
    """
    created_by = ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=SET_NULL, null=True, blank=True,
        editable=False, related_name="created_%(app_label)s_%(class)s_set",
        verbose_name=_("created by"))
    modified_by = ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=SET_NULL, null=True, blank=True,
        editable=False, related_name="modified_%(app_label)s_%(class)s_set",
        verbose_name=_("modified by"))

    class Meta:
        abstract = True
