import math
from typing import List, Optional, Sequence, Tuple

from nearby_search.geo.coordinates import Coordinate
from nearby_search.geo.distance import calculate_distance

SORT_FIELDS = {
    "price_low": ("price", False),
    "price_high": ("price", True),
    "popular": ("views", True),
}


def _created_ts(entity) -> float:
    return entity.created_at.timestamp()


class Ranker:
    def rank(
        self,
        candidates: Sequence,
        center: Optional[Coordinate] = None,
        sort: str = "latest",
        price_field: str = "price",
    ) -> List:
        # Newest first is the base order and the tie-break for every other key.
        ranked = sorted(candidates, key=_created_ts, reverse=True)

        if center is not None:
            ranked.sort(key=lambda e: self.distance_to(center, e))
            return ranked

        if sort == "oldest":
            return sorted(candidates, key=_created_ts)
        if sort in SORT_FIELDS:
            field, descending = SORT_FIELDS[sort]
            if field == "price":
                field = price_field
            ranked.sort(key=lambda e: self._sort_value(e, field, descending))
        return ranked

    @staticmethod
    def distance_to(center: Coordinate, entity) -> float:
        coordinate = entity.geo.coordinate
        if coordinate is None:
            return math.inf
        return calculate_distance(center, coordinate)

    @staticmethod
    def _sort_value(entity, field: str, descending: bool) -> Tuple[bool, float]:
        value = entity.value_of(field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            # Missing values go last in either direction
            return (True, 0.0)
        return (False, -value if descending else value)

    def paginate(self, ranked: Sequence, page: int, page_size: int) -> Tuple[List, bool]:
        """One-step lookahead: take page_size + 1 items to learn whether more exist."""
        start = (page - 1) * page_size
        window = list(ranked[start : start + page_size + 1])
        has_more = len(window) > page_size
        return window[:page_size], has_more


ranker = Ranker()
