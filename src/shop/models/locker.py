from django.db import models
from django.db.models import JSONField
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel


class PudoLockerModelManager(models.Manager):
    def update_or_create_from_api(self, data: dict, synced_at):
        """ Upsert a locker from one record of the PUDO lockers feed. """
        place = data.get('place') or {}
        return self.update_or_create(
            code=data['code'],
            defaults={
                'provider': data.get('provider') or 'pudo',
                'name': data.get('name') or data['code'],
                'latitude': data['latitude'],
                'longitude': data['longitude'],
                'opening_hours': data.get('openinghours') or [],
                'address': data.get('address') or '',
                'detailed_address': data.get('detailed_address') or {},
                'city': place.get('town') or '',
                'postal_code': place.get('postalCode') or '',
                'locker_type': data.get('type') or {},
                'place': place,
                'box_types': data.get('lstTypesBoxes') or [],
                'is_active': True,
                'last_synced': synced_at,
            }
        )


class PudoLocker(TimeStampedModel):
    code = models.CharField(_('locker code'), max_length=64, unique=True)
    provider = models.CharField(max_length=50, default='pudo')
    name = models.CharField(max_length=255)
    latitude = models.DecimalField(max_digits=10, decimal_places=7)
    longitude = models.DecimalField(max_digits=10, decimal_places=7)
    opening_hours = JSONField(default=list, blank=True)
    address = models.CharField(max_length=500, blank=True, default='')
    detailed_address = JSONField(default=dict, blank=True)
    city = models.CharField(max_length=255, blank=True, default='')
    postal_code = models.CharField(max_length=15, blank=True, default='')
    locker_type = JSONField(default=dict, blank=True)
    place = JSONField(default=dict, blank=True)
    box_types = JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    last_synced = models.DateTimeField(null=True, blank=True)

    objects = PudoLockerModelManager()

    class Meta:
        verbose_name = _('PUDO locker')
        ordering = ('name', )

    def __str__(self):
        return f'{self.code} {self.name}'

    def to_details(self) -> dict:
        """ Snapshot stored on orders so later syncs don't rewrite history. """
        return {
            'code': self.code,
            'name': self.name,
            'address': self.address,
            'provider': self.provider,
            'latitude': float(self.latitude),
            'longitude': float(self.longitude),
        }
