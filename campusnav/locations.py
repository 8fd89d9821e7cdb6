"""Directory of named campus locations."""

from typing import Optional

from rapidfuzz import process

from .config import CONFIG
from .errors import UnknownLocation
from .models import GeoPoint, NamedLocation

CAMPUS_LOCATIONS = [
    NamedLocation("Main Academic Block", "Central academic building", GeoPoint(18.5226207, 73.7307949)),
    NamedLocation("Library", "Central library and study area", GeoPoint(18.5230157, 73.7305252)),
    NamedLocation("Student Hostel", "Residential accommodation", GeoPoint(18.5235557, 73.7315252)),
    NamedLocation("Cafeteria", "Main dining facility", GeoPoint(18.5228207, 73.7310949)),
    NamedLocation("Sports Complex", "Athletic facilities", GeoPoint(18.5220207, 73.7320949)),
    NamedLocation("Auditorium", "Main event venue", GeoPoint(18.5232207, 73.7302949)),
    NamedLocation("Admin Block", "Administrative offices", GeoPoint(18.5234207, 73.7308949)),
    NamedLocation("Medical Center", "Campus health services", GeoPoint(18.5225207, 73.7312949)),
    NamedLocation("FLAME University Library", "Academic Block A, Ground Floor", GeoPoint(18.5245123, 73.7298456)),
]


def search_locations(query: str, locations: Optional[list[NamedLocation]] = None) -> list[NamedLocation]:
    """Case-insensitive substring search over names and descriptions"""
    locations = CAMPUS_LOCATIONS if locations is None else locations
    q = query.strip().lower()
    if not q:
        return list(locations)
    return [
        loc for loc in locations
        if q in loc.name.lower() or q in loc.description.lower()
    ]


def find_location(name: str, locations: Optional[list[NamedLocation]] = None) -> NamedLocation:
    """Resolve a location by exact name, falling back to the best fuzzy match"""
    locations = CAMPUS_LOCATIONS if locations is None else locations
    for loc in locations:
        if loc.name.lower() == name.strip().lower():
            return loc

    names = [loc.name for loc in locations]
    match = process.extractOne(name, names, score_cutoff=CONFIG["location_match_score"])
    if match is None:
        raise UnknownLocation(f"No campus location matches '{name}'")
    _, _, index = match
    return locations[index]
