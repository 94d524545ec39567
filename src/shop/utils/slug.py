from django.utils.text import slugify


def unique_slugify(model, value: str, exclude_pk=None, field_name: str = 'slug') -> str:
    """
    Slugify `value` and append -2, -3, ... until no other row of `model`
    holds the slug.
    """
    base = slugify(value) or 'item'
    candidate = base
    suffix = 2
    queryset = model._default_manager.all()
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    while queryset.filter(**{field_name: candidate}).exists():
        candidate = f'{base}-{suffix}'
        suffix += 1
    return candidate
