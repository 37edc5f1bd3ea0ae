"""
Local geospatial index over administrative points (pincode centroids).

Points are bucketed into fixed-size lat/lng grid cells so a bounded-radius
nearest-neighbour query only measures points in the cells the search circle
can touch. Pure in-process; never makes network calls.
"""

import logging
import math
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from civic_dispatch.models.location import AdminPoint
from civic_dispatch.utils.geo import haversine_meters

logger = logging.getLogger(__name__)

# One degree of latitude is ~111 km everywhere
METERS_PER_DEGREE_LAT = 111320.0


class LocalGeoIndex:

    CELL_SIZE_DEGREES = 0.1  # ~11 km cells

    def __init__(self, points: Iterable[AdminPoint] = ()):
        self._lock = threading.Lock()
        self._cells: Dict[Tuple[int, int], List[AdminPoint]] = defaultdict(list)
        self._count = 0
        for point in points:
            self.add(point)

    def __len__(self) -> int:
        return self._count

    def _cell(self, lat: float, lng: float) -> Tuple[int, int]:
        return (
            math.floor(lat / self.CELL_SIZE_DEGREES),
            math.floor(lng / self.CELL_SIZE_DEGREES),
        )

    def add(self, point: AdminPoint) -> None:
        with self._lock:
            self._cells[self._cell(point.lat, point.lng)].append(point)
            self._count += 1

    def _candidate_cells(self, lat: float, lng: float, radius_m: float) -> List[Tuple[int, int]]:
        lat_span = radius_m / METERS_PER_DEGREE_LAT
        cos_lat = math.cos(math.radians(min(abs(lat) + lat_span, 89.9)))
        lng_span = radius_m / (METERS_PER_DEGREE_LAT * max(cos_lat, 1e-6))

        min_row, min_col = self._cell(lat - lat_span, lng - lng_span)
        max_row, max_col = self._cell(lat + lat_span, lng + lng_span)
        return [
            (row, col)
            for row in range(min_row, max_row + 1)
            for col in range(min_col, max_col + 1)
        ]

    def nearest(self, lat: float, lng: float, radius_m: float) -> Optional[Tuple[AdminPoint, float]]:
        """
        Closest point within radius_m meters.

        Returns:
            (point, distance_m) or None when nothing lies inside the radius.
            Equal distances are broken by pincode so results are deterministic.
        """
        best: Optional[Tuple[AdminPoint, float]] = None
        with self._lock:
            for cell in self._candidate_cells(lat, lng, radius_m):
                for point in self._cells.get(cell, ()):
                    distance = haversine_meters(lat, lng, point.lat, point.lng)
                    if distance > radius_m:
                        continue
                    if (
                        best is None
                        or distance < best[1]
                        or (distance == best[1] and point.pincode < best[0].pincode)
                    ):
                        best = (point, distance)
        return best

    @classmethod
    def from_store(cls, store) -> "LocalGeoIndex":
        index = cls(store.list_admin_points())
        logger.info(f"Local geospatial index loaded with {len(index)} admin points")
        return index
