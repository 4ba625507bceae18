"""Checks that a location falls inside the supported Texas metros."""

import re
from typing import Dict

from servicefinder.models import RegionMatch

METROS: Dict[str, Dict[str, object]] = {
    "houston": {
        "name": "Houston Metro",
        "counties": [
            "Harris County",
            "Fort Bend County",
            "Montgomery County",
            "Brazoria County",
            "Galveston County",
            "Liberty County",
            "Waller County",
            "Chambers County",
            "Austin County",
        ],
    },
    "austin": {
        "name": "Austin Metro",
        "counties": [
            "Travis County",
            "Williamson County",
            "Hays County",
            "Bastrop County",
            "Caldwell County",
        ],
    },
    "dfw": {
        "name": "Dallas-Fort Worth Metro",
        "counties": [
            "Dallas County",
            "Tarrant County",
            "Collin County",
            "Denton County",
            "Rockwall County",
            "Ellis County",
            "Johnson County",
            "Kaufman County",
            "Parker County",
            "Wise County",
        ],
    },
}

_TEXAS_ZIP = re.compile(r"\b7\d{4}\b")


def _bare_county(county: str) -> str:
    return county.replace(" County", "").lower()


def is_supported_region(location: str) -> RegionMatch:
    """Match a free-text location to a metro; state-level or ZIP matches carry no metro.

    Full county names win over metro names, which win over bare county names, so
    "Austin County" lands in Houston while "Austin" stays in Austin.
    """
    normalized = location.strip().lower()
    if not normalized:
        return RegionMatch(valid=False)

    for metro in METROS.values():
        if any(county.lower() in normalized for county in metro["counties"]):
            return RegionMatch(valid=True, metro=str(metro["name"]))

    for metro_key, metro in METROS.items():
        name = str(metro["name"])
        if metro_key in normalized or name.lower() in normalized:
            return RegionMatch(valid=True, metro=name)

    for metro in METROS.values():
        if any(_bare_county(county) in normalized for county in metro["counties"]):
            return RegionMatch(valid=True, metro=str(metro["name"]))

    if "texas" in normalized or ", tx" in normalized:
        return RegionMatch(valid=True)

    if _TEXAS_ZIP.search(normalized):
        return RegionMatch(valid=True)

    return RegionMatch(valid=False)
