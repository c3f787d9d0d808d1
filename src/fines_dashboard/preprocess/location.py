from __future__ import annotations

from typing import Any

from fines_dashboard.preprocess.coerce import is_blank

MAJOR_CITIES = "Major Cities"
LOCATION_CATEGORIES = (
    MAJOR_CITIES,
    "Inner Regional",
    "Outer Regional",
    "Remote",
    "Very Remote",
)
REGIONAL_CATEGORIES = LOCATION_CATEGORIES[1:]
OTHER_LOCATION = "Other"

STATE_ABBREVIATIONS = {
    "New South Wales": "NSW",
    "Victoria": "VIC",
    "Queensland": "QLD",
    "South Australia": "SA",
    "Western Australia": "WA",
    "Tasmania": "TAS",
    "Northern Territory": "NT",
    "Australian Capital Territory": "ACT",
}


def location_category(value: Any) -> str:
    """Collapse a remoteness-area label into one of the five location categories."""
    if is_blank(value):
        return OTHER_LOCATION
    text = str(value)
    if "Major Cities" in text:
        return MAJOR_CITIES
    if "Inner Regional" in text:
        return "Inner Regional"
    if "Outer Regional" in text:
        return "Outer Regional"
    if "Very Remote" in text or ("Remote Australia" in text and "Very" in text):
        return "Very Remote"
    if "Remote" in text:
        return "Remote"
    return OTHER_LOCATION


def jurisdiction_abbreviation(name: Any) -> str:
    text = "" if is_blank(name) else str(name).strip()
    return STATE_ABBREVIATIONS.get(text, text)
