"""
Facility lookups consumed by the burden engine.

Two questions are asked of a facility:

    1. What is its published average wait?          (estimated-wait display)
    2. How strongly does it lean toward LWBS events?  (leave-signal weight)

The directory here is backed by a static Alberta Health Services snapshot.
Anything with the same two methods can be passed to the engine instead.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Facility:
    """An emergency department the service knows about."""
    facility_id: str
    name: str
    city: str
    wait_minutes: Optional[float] = None
    lwbs_rate: Optional[float] = None  # historical fraction of visits that left unseen


SNAPSHOT_SOURCE = "Alberta Health Services Wait Times"
SNAPSHOT_SOURCE_URL = "https://www.albertahealthservices.ca/waittimes/waittimes.aspx"
SNAPSHOT_TAKEN_AT = "2026-02-20T22:30:00-07:00"

FACILITY_SNAPSHOT: Dict[str, Facility] = {
    f.facility_id: f
    for f in [
        Facility("uofa", "University of Alberta Hospital", "Edmonton", 316, 0.151),
        Facility("royal_alexandra", "Royal Alexandra Hospital", "Edmonton", 291, 0.199),
        Facility("grey_nuns", "Grey Nuns Community Hospital", "Edmonton", 159, 0.134),
        Facility("misericordia", "Misericordia Community Hospital", "Edmonton", 367, 0.172),
        Facility("sturgeon", "Sturgeon Community Hospital", "St. Albert", 341, 0.093),
        Facility("foothills", "Foothills Medical Centre", "Calgary", 72),
        Facility("rockyview", "Rockyview General Hospital", "Calgary", 58),
    ]
}


class FacilityDirectory:
    """
    Read-only facility lookup.

    The leave-signal weight of a facility is its LWBS rate relative to the
    mean rate across every facility in the directory that reports one, so a
    facility at the network average scales LWBS risk by exactly 1.0.

    Example:
        >>> directory = FacilityDirectory()
        >>> directory.get_wait_minutes("grey_nuns")
        159
        >>> directory.get_wait_minutes("nowhere") is None
        True
    """

    def __init__(
        self,
        facilities: Optional[Iterable[Facility]] = None,
        default_leave_signal_weight: float = 1.0,
    ):
        source = FACILITY_SNAPSHOT.values() if facilities is None else facilities
        self._facilities: Dict[str, Facility] = {f.facility_id: f for f in source}
        self.default_leave_signal_weight = default_leave_signal_weight

        rates = [f.lwbs_rate for f in self._facilities.values() if f.lwbs_rate]
        self._mean_lwbs_rate = sum(rates) / len(rates) if rates else None

    def __contains__(self, facility_id: str) -> bool:
        return facility_id in self._facilities

    def get(self, facility_id: str) -> Optional[Facility]:
        return self._facilities.get(facility_id)

    def all(self) -> List[Facility]:
        return list(self._facilities.values())

    def get_wait_minutes(self, facility_id: str) -> Optional[float]:
        """Published average wait, or None when the facility is unknown."""
        facility = self._facilities.get(facility_id)
        if facility is None:
            logger.info(f"No wait-time data for facility '{facility_id}'")
            return None
        return facility.wait_minutes

    def get_leave_signal_weight(self, facility_id: str) -> float:
        """LWBS scaling factor for the facility; the default when unknown."""
        facility = self._facilities.get(facility_id)
        if facility is None:
            logger.info(f"No leave-signal data for facility '{facility_id}'")
            return self.default_leave_signal_weight
        if not facility.lwbs_rate or not self._mean_lwbs_rate:
            return self.default_leave_signal_weight
        return facility.lwbs_rate / self._mean_lwbs_rate
