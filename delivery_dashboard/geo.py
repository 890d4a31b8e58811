"""
Coarse region bucketing from store coordinates.

The rules are ordered and the first match wins. The boxes are deliberately
rough (they overlap and leave gaps) and must not be "corrected" into real
geofences: Unclassified stores are simply left out of aggregation.
"""

import numpy as np
import pandas as pd

from .models import Region


def classify_region(latitude: float, longitude: float) -> Region:
    """Map a (latitude, longitude) pair to a Region."""
    if latitude > 25 and longitude < -50:
        return Region.NORTH_AMERICA
    if latitude < 10 and longitude < -30:
        return Region.SOUTH_AMERICA
    if latitude > 35 and -10 < longitude < 40:
        return Region.EUROPE
    if latitude > -10 and longitude > 40:
        return Region.ASIA_PACIFIC
    return Region.UNCLASSIFIED


def classify_regions(latitude: pd.Series, longitude: pd.Series) -> pd.Series:
    """Vectorised classify_region over aligned coordinate columns.

    Returns a Series of Region members with the same index.
    """
    conditions = [
        (latitude > 25) & (longitude < -50),
        (latitude < 10) & (longitude < -30),
        (latitude > 35) & (longitude > -10) & (longitude < 40),
        (latitude > -10) & (longitude > 40),
    ]
    choices = [
        Region.NORTH_AMERICA.value,
        Region.SOUTH_AMERICA.value,
        Region.EUROPE.value,
        Region.ASIA_PACIFIC.value,
    ]
    labels = np.select(conditions, choices, default=Region.UNCLASSIFIED.value)
    return pd.Series(labels, index=latitude.index).map(Region)
