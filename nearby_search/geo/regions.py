"""Named region centers and nearest-region lookup."""
import json
import logging
from typing import Dict, Iterator, Mapping, Optional, Tuple

from nearby_search.core.config import settings
from nearby_search.geo.coordinates import Coordinate
from nearby_search.geo.distance import calculate_distance

logger = logging.getLogger(__name__)

# Seoul districts and neighbourhoods
REGION_CENTERS: Dict[str, Tuple[float, float]] = {
    "강남": (37.5173, 127.0473),
    "홍대": (37.5563, 126.9236),
    "신촌": (37.5596, 126.9426),
    "이태원": (37.5347, 126.9947),
    "건대": (37.5401, 127.0688),
    "압구정": (37.5274, 127.0276),
    "청담": (37.5225, 127.0478),
    "잠실": (37.5133, 127.1028),
    "여의도": (37.5219, 126.9245),
    "종로": (37.5735, 126.9788),
    "명동": (37.5636, 126.9832),
    "동대문": (37.5707, 127.0095),
    "서초": (37.4837, 127.0324),
    "송파": (37.5145, 127.1059),
    "마포": (37.5637, 126.9086),
}


class Gazetteer:
    """Fixed, ordered table of region name -> center coordinate."""

    def __init__(self, centers: Mapping[str, Tuple[float, float]]):
        self._centers: Dict[str, Coordinate] = {
            name: Coordinate(lat=lat, lng=lng) for name, (lat, lng) in centers.items()
        }

    def __len__(self) -> int:
        return len(self._centers)

    def __iter__(self) -> Iterator[str]:
        return iter(self._centers)

    def center_of(self, name: str) -> Optional[Coordinate]:
        return self._centers.get(name)

    def nearest(
        self, coordinate: Coordinate, max_distance_km: float = None
    ) -> Optional[str]:
        """Closest region name; the first entry wins on equal distance.

        With `max_distance_km`, a nearest region farther than the cutoff is None.
        """
        nearest_name = None
        min_distance = float("inf")
        for name, center in self._centers.items():
            distance = calculate_distance(coordinate, center)
            if distance < min_distance:
                min_distance = distance
                nearest_name = name

        if max_distance_km is not None and min_distance > max_distance_km:
            return None
        return nearest_name


def load_gazetteer(path: str = None) -> Gazetteer:
    """Built-in table, or a JSON object of {name: [lat, lng]} when a path is configured."""
    path = path if path is not None else settings.GAZETTEER_PATH
    if not path:
        return Gazetteer(REGION_CENTERS)

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    logger.info(f"Loaded {len(raw)} region centers from {path}")
    return Gazetteer({name: tuple(center) for name, center in raw.items()})


default_gazetteer = load_gazetteer()


def find_nearest_region(
    coordinate: Coordinate, gazetteer: Gazetteer = None
) -> Optional[str]:
    if gazetteer is None:
        gazetteer = default_gazetteer
    return gazetteer.nearest(coordinate)
