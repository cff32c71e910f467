from django.conf import settings

ENGINE_DEFAULTS = {
    'BRANCH_RESTORE_WINDOW_HOURS': 48,
    'ORDER_NUMBER_MAX_RETRIES': 5,
    'POS_ORDER_PREFIX': 'ORD',
    'WEBSITE_ORDER_PREFIX': 'WEB',
}


def engine_setting(name):
    """Look up a tunable from settings.RESTOPS, falling back to the defaults above."""
    overrides = getattr(settings, 'RESTOPS', {}) or {}
    if name in overrides:
        return overrides[name]
    return ENGINE_DEFAULTS[name]
