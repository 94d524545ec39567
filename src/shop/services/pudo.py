"""
PUDO locker lookup.

Lockers are pulled from the PUDO API into `PudoLocker` rows and searched
locally by great-circle distance from a geocoded address.
"""
import math
from datetime import timedelta
from logging import getLogger
from typing import List, Optional, Tuple

import requests
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from shop.exceptions import LockerLookupError
from shop.models import PudoLocker

logger = getLogger(__name__)

EARTH_RADIUS_KM = 6371
GEOCODER_TIMEOUT = 10
PUDO_TIMEOUT = 30

# Used when the geocoder is unreachable or finds nothing
CITY_COORDINATES = {
    'johannesburg': (-26.2041, 28.0473),
    'cape town': (-33.9249, 18.4241),
    'durban': (-29.8587, 31.0218),
    'pretoria': (-25.7479, 28.2293),
    'bloemfontein': (-29.1217, 26.2146),
    'port elizabeth': (-33.9608, 25.6022),
    'pietermaritzburg': (-29.6088, 30.3796),
    'randburg': (-26.0935, 28.0094),
    'sandton': (-26.1076, 28.0567),
    'centurion': (-25.8601, 28.1888),
    'midrand': (-25.9885, 28.1293),
    'roodepoort': (-26.1625, 27.8744),
    'kempton park': (-26.1011, 28.2305),
}
DEFAULT_CITY = 'johannesburg'


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """ Great-circle distance between two points in kilometres. """
    lat1, lon1, lat2, lon2 = map(float, (lat1, lon1, lat2, lon2))
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(km: float) -> str:
    if km < 1:
        return f'{round(km * 1000)}m'
    return f'{km:.1f}km'


def city_coordinates(address: str) -> Tuple[float, float]:
    lowered = (address or '').lower()
    for city, coordinates in CITY_COORDINATES.items():
        if city in lowered:
            return coordinates
    return CITY_COORDINATES[DEFAULT_CITY]


def geocode_address(address: str) -> Tuple[float, float]:
    """
    Resolve a South African address to `(lat, lng)` through Nominatim.
    Falls back to the city table when the lookup fails or finds nothing.
    """
    try:
        res = requests.get(
            settings.GEOCODER_URL,
            params={
                'q': f'{address}, South Africa',
                'format': 'json',
                'limit': 1,
            },
            headers={'User-Agent': settings.GEOCODER_USER_AGENT},
            timeout=GEOCODER_TIMEOUT,
        )
        res.raise_for_status()
        results = res.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f'Geocoding "{address}" failed: {e}')
        return city_coordinates(address)

    if not results:
        logger.info(f'No geocoding result for "{address}", using city fallback')
        return city_coordinates(address)
    return float(results[0]['lat']), float(results[0]['lon'])


def find_nearest_lockers(address: Optional[str] = None,
                         lat: Optional[float] = None,
                         lng: Optional[float] = None,
                         max_distance: float = 10,
                         limit: int = 3) -> List[dict]:
    """
    Active lockers within `max_distance` km, nearest first. Each result is
    `{'locker': PudoLocker, 'distance': km, 'distance_text': str}`.
    """
    if lat is None or lng is None:
        if not address:
            raise LockerLookupError('An address or coordinates are required')
        lat, lng = geocode_address(address)

    results = []
    for locker in PudoLocker.objects.filter(is_active=True):
        distance = haversine_distance(lat, lng, locker.latitude, locker.longitude)
        if distance <= max_distance:
            results.append({
                'locker': locker,
                'distance': round(distance, 2),
                'distance_text': format_distance(distance),
            })
    results.sort(key=lambda result: result['distance'])
    return results[:limit]


def find_lockers_with_fallback(address: str, preferred_distance: float = 10,
                               fallback_distance: float = 100,
                               limit: int = 3) -> dict:
    lat, lng = geocode_address(address)
    lockers = find_nearest_lockers(
        lat=lat, lng=lng, max_distance=preferred_distance, limit=limit)
    if lockers:
        return {'lockers': lockers, 'used_fallback': False, 'message': ''}

    lockers = find_nearest_lockers(
        lat=lat, lng=lng, max_distance=fallback_distance, limit=limit)
    if not lockers:
        raise LockerLookupError(
            f'No PUDO lockers found within {fallback_distance}km of this address')
    return {
        'lockers': lockers,
        'used_fallback': True,
        'message': (
            f'No lockers within {preferred_distance}km. The nearest locker is '
            f'{lockers[0]["distance_text"]} away.'),
    }


def fetch_lockers() -> List[dict]:
    res = requests.get(
        settings.PUDO_API_URL,
        headers={
            'Authorization': f'Bearer {settings.PUDO_API_KEY}',
            'Accept': 'application/json',
        },
        timeout=PUDO_TIMEOUT,
    )
    res.raise_for_status()
    return res.json()


def sync_lockers() -> dict:
    """
    Upsert every locker in the PUDO feed. Records that can't be stored are
    reported in `errors` and don't stop the sync.
    """
    records = fetch_lockers()
    synced_at = timezone.now()
    synced = 0
    errors = []
    for record in records:
        try:
            with transaction.atomic():
                PudoLocker.objects.update_or_create_from_api(record, synced_at)
        except (KeyError, TypeError, ValueError, ArithmeticError,
                ValidationError) as e:
            errors.append({'code': record.get('code'), 'error': str(e)})
            continue
        synced += 1

    logger.info(f'Synced {synced} PUDO lockers ({len(errors)} errors)')
    return {'synced': synced, 'errors': errors}


def should_refresh_cache() -> bool:
    last_synced = PudoLocker.objects.aggregate(
        last_synced=Max('last_synced'))['last_synced']
    if last_synced is None:
        return True
    max_age = timedelta(hours=settings.PUDO_CACHE_HOURS)
    return timezone.now() - last_synced > max_age


def get_locker_by_code(code: str) -> Optional[PudoLocker]:
    return PudoLocker.objects.filter(code=code, is_active=True).first()
