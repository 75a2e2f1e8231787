"""
Process-level defaults read from the environment.

Values are read at call time so tests and long-running hosts can change
them without reloading the module.
"""

import logging
import os

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH_ENV = "VOTEKIT_MAX_NAME_LENGTH"
DEFAULT_MAX_NAME_LENGTH = 100


def max_name_length() -> int:
    """
    Maximum length accepted for constituent names, identifiers and tags.

    Returns:
        Value of VOTEKIT_MAX_NAME_LENGTH, or the default when unset or invalid
    """
    raw = os.environ.get(MAX_NAME_LENGTH_ENV)
    if not raw:
        return DEFAULT_MAX_NAME_LENGTH

    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            f"Ignoring non-numeric {MAX_NAME_LENGTH_ENV}={raw!r}, using {DEFAULT_MAX_NAME_LENGTH}"
        )
        return DEFAULT_MAX_NAME_LENGTH

    if value < 1:
        logger.warning(
            f"Ignoring non-positive {MAX_NAME_LENGTH_ENV}={value}, using {DEFAULT_MAX_NAME_LENGTH}"
        )
        return DEFAULT_MAX_NAME_LENGTH

    return value
