"""Citizen satisfaction derived from city parameters."""

import math
from typing import Mapping, Optional

PARAM_WEIGHTS = {
    "entertainment": 0.2,
    "security": 0.2,
    "sanitation": 0.2,
    "transit": 0.1,
    "environment": 0.2,
    "education": 0.1,
    "disaster_prevention": 0.15,
    "tourism": 0.1,
}

NEUTRAL_SATISFACTION = 50


def calculate_satisfaction_from_parameters(
    params: Optional[Mapping[str, float]] = None, penalty: Optional[float] = None
) -> int:
    """
    Weighted mean of the city parameters, minus ``penalty``, clamped to 0-100.

    Returns the neutral value when no parameters are known. Missing
    parameters count as 0.
    """
    if params is None:
        return NEUTRAL_SATISFACTION

    weighted = sum(params.get(k, 0.0) * w for k, w in PARAM_WEIGHTS.items())
    satisfaction = weighted / sum(PARAM_WEIGHTS.values())
    if penalty is not None:
        satisfaction -= penalty
    if math.isnan(satisfaction):
        satisfaction = NEUTRAL_SATISFACTION
    return int(max(0, min(100, round(satisfaction))))
