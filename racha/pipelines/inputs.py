"""
Input coercion shared by the engine entry points.

The engine is total over strings, so these helpers never raise for text and
never raise for an unknown region: bad regions are logged and dropped.
"""

import logging
from typing import Optional, Union

from racha.pipelines.lang.normalizer import normalize
from racha.schemas.expense import REGION_DISPLAY_NAMES, STATE_CODE_TO_REGION, Region


logger = logging.getLogger(__name__)

_REGION_LOOKUP = {}
for _region, _display in REGION_DISPLAY_NAMES.items():
    _REGION_LOOKUP[_region.value] = _region
    _REGION_LOOKUP[normalize(_display)] = _region
    _REGION_LOOKUP[normalize(_region.value.replace('_', ' '))] = _region
for _code, _region in STATE_CODE_TO_REGION.items():
    _REGION_LOOKUP[_code.lower()] = _region


def ensure_text(text) -> str:
    """Accept str, treat None as empty, reject everything else."""
    if text is None:
        return ""
    if not isinstance(text, str):
        raise TypeError(f"Expected text as str, got {type(text).__name__}")
    return text


def coerce_region(region: Union[Region, str, None]) -> Optional[Region]:
    """
    Resolve a declared region.

    Accepts a Region, its value ("sao_paulo"), its display name ("São Paulo")
    or a state code ("SP"). Returns None when nothing usable was declared.
    """
    if region is None:
        return None
    if isinstance(region, Region):
        return region
    if isinstance(region, str):
        key = normalize(region)
        if not key:
            return None
        resolved = _REGION_LOOKUP.get(key)
        if resolved is not None:
            return resolved

    logger.warning(f"Ignoring unknown declared region: {region!r}")
    return None
