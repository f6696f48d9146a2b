from django.utils import timezone


def generate_document_number(model, field_name, prefix, business_id):
    """
    Generate the next ``<PREFIX>-YYYYMMDD#####`` number for ``model``.

    The five digit suffix counts documents created for the business on the
    same day; the loop skips numbers already taken.
    """
    today = timezone.now().strftime('%Y%m%d')
    base = f"{prefix}-{today}"
    existing = model._base_manager.filter(business_id=business_id, **{f'{field_name}__startswith': base})

    sequence = existing.count() + 1
    number = f"{base}{sequence:05d}"
    while model._base_manager.filter(business_id=business_id, **{field_name: number}).exists():
        sequence += 1
        number = f"{base}{sequence:05d}"
    return number
