# rentals/utils/maps.py
"""
Google Maps helpers: pull coordinates out of a pasted share URL and
build links back from coordinates.

Shortened links (maps.app.goo.gl/...) carry no coordinates and yield None.
"""
import logging
import math
import re
from decimal import Decimal
from typing import Optional

from rentals.schemas.apartment import Coordinates

logger = logging.getLogger(__name__)

_NUMBER = r"(-?\d+\.?\d*)"

# Tried in order; the first match with in-range values wins
COORDINATE_PATTERNS = (
    # https://maps.google.com/?q=-32.889459,-68.845839
    re.compile(r"[?&]q=" + _NUMBER + "," + _NUMBER),
    # https://www.google.com/maps/@-32.889459,-68.845839,17z
    re.compile(r"@" + _NUMBER + "," + _NUMBER + r",?\d*\.?\d*z?"),
    # https://www.google.com/maps/place/Somewhere/@-32.889459,-68.845839
    re.compile(r"/maps/place/[^/]+/@" + _NUMBER + "," + _NUMBER),
)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    return (
        math.isfinite(latitude)
        and math.isfinite(longitude)
        and -90 <= latitude <= 90
        and -180 <= longitude <= 180
    )


def extract_coordinates_from_google_maps_url(url: Optional[str]) -> Optional[Coordinates]:
    if not url:
        return None

    try:
        for pattern in COORDINATE_PATTERNS:
            match = pattern.search(url)
            if not match:
                continue
            latitude = float(match.group(1))
            longitude = float(match.group(2))
            if is_valid_coordinate(latitude, longitude):
                return Coordinates(latitude=latitude, longitude=longitude)
        return None
    except (TypeError, ValueError):
        logger.exception("could not extract coordinates from %r", url)
        return None


def get_best_coordinates(
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    google_maps_url: Optional[str] = None,
) -> Optional[Coordinates]:
    """
    Coordinates from the maps URL win over the stored lat/lng.
    """
    if google_maps_url:
        extracted = extract_coordinates_from_google_maps_url(google_maps_url)
        if extracted:
            return extracted

    if latitude is not None and longitude is not None:
        return Coordinates(latitude=latitude, longitude=longitude)

    return None


def _format_number(value: float) -> str:
    """
    Number to text the way JavaScript prints it: 0 -> "0", 0.00001 -> "0.00001",
    -0.0000005 -> "-5e-7". Exponent form only below 1e-6 or from 1e21 up.
    """
    value = float(value)
    if value == 0:
        return "0"
    text = repr(value)
    mantissa, _, exponent = text.partition("e")
    if not exponent:
        return text[:-2] if text.endswith(".0") else text

    power = int(exponent)
    if -7 < power < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def get_google_maps_static_url(latitude: float, longitude: float) -> str:
    return f"https://www.google.com/maps?q={_format_number(latitude)},{_format_number(longitude)}"


def get_google_maps_embed_url(latitude: float, longitude: float, api_key: str) -> str:
    return (
        "https://www.google.com/maps/embed/v1/place"
        f"?key={api_key}&q={_format_number(latitude)},{_format_number(longitude)}&zoom=15"
    )
