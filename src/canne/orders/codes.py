"""Short code generation for customer-facing order identifiers.

Codes look like ``ORD-7K2Q``. The code columns are unique, so a
collision surfaces as an IntegrityError on insert and is retried with a
fresh code.
"""

import logging
import random
import secrets
import string

from django.db import IntegrityError, transaction

from canne.core.conf import get_setting
from canne.core.exceptions import ShortCodeExhausted

logger = logging.getLogger(__name__)

SHORT_CODE_ALPHABET = string.ascii_uppercase + string.digits

_system_random = secrets.SystemRandom()


def generate_short_code(rng: random.Random | None = None) -> str:
    """Return a new random short code.

    Args:
        rng: Random source (defaults to the OS CSPRNG)
    """
    rng = rng or _system_random
    prefix = get_setting("SHORT_CODE_PREFIX")
    length = get_setting("SHORT_CODE_LENGTH")
    suffix = "".join(rng.choice(SHORT_CODE_ALPHABET) for _ in range(length))
    return f"{prefix}{suffix}"


def create_with_short_code(model, field: str, rng: random.Random | None = None, **values):
    """Insert a row under a freshly generated unique short code.

    Args:
        model: Model class to create
        field: Name of the unique code field
        rng: Random source passed to generate_short_code
        **values: Remaining field values

    Returns:
        The created instance

    Raises:
        ShortCodeExhausted: Every attempt collided with an existing code
    """
    max_attempts = get_setting("SHORT_CODE_MAX_ATTEMPTS")

    for attempt in range(1, max_attempts + 1):
        code = generate_short_code(rng)
        try:
            with transaction.atomic():
                return model.objects.create(**{field: code}, **values)
        except IntegrityError:
            if not model.objects.filter(**{field: code}).exists():
                raise
            logger.warning(
                "Short code collision on %s.%s=%s (attempt %d/%d)",
                model._meta.db_table,
                field,
                code,
                attempt,
                max_attempts,
            )

    raise ShortCodeExhausted("Could not allocate a unique order code")
