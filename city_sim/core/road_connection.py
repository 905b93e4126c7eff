"""Road tile shape classification used to pick a sprite variant."""

from typing import Callable, NamedTuple

from .facility import Position
from .facility_store import FacilityStore


class RoadConnection(NamedTuple):
    type: str  # cross, t-junction, turn, horizontal, vertical, end, isolated
    variant_index: int
    rotation: int
    flip: bool


def classify_road(is_road: Callable[[int, int], bool], x: int, y: int) -> RoadConnection:
    """
    Classify the road at ``(x, y)`` from its eight neighbors.

    Shapes are tested in precedence order: cross, t-junction, turn,
    straight, end, isolated. T-junctions need the side road and both of its
    diagonals, so a road running alongside a block of road reads as a
    junction.
    """
    left = is_road(x - 1, y)
    right = is_road(x + 1, y)
    up = is_road(x, y - 1)
    down = is_road(x, y + 1)
    left_up = is_road(x - 1, y - 1)
    right_up = is_road(x + 1, y - 1)
    left_down = is_road(x - 1, y + 1)
    right_down = is_road(x + 1, y + 1)

    connections = sum((left, right, up, down))

    if left and right and up and down:
        return RoadConnection("cross", 1, 0, False)

    if connections >= 1:
        if left and left_up and left_down:
            return RoadConnection("t-junction", 5, 0, True)
        if right and right_up and right_down:
            return RoadConnection("t-junction", 5, 180, True)
        if up and left_up and right_up:
            return RoadConnection("t-junction", 4, 0, False)
        if down and left_down and right_down:
            return RoadConnection("t-junction", 4, 180, False)

    if connections == 2:
        if right and up:
            return RoadConnection("turn", 2, 0, True)
        if left and down:
            return RoadConnection("turn", 2, 0, False)
        if right and down:
            return RoadConnection("turn", 3, 180, False)
        if left and up:
            return RoadConnection("turn", 3, 0, False)

    if left and right:
        return RoadConnection("horizontal", 0, 180, True)
    if up and down:
        return RoadConnection("vertical", 0, 0, False)

    if left or right:
        return RoadConnection("end", 0, 180, True)
    if up or down:
        return RoadConnection("end", 0, 0, False)

    return RoadConnection("isolated", 0, 0, False)


def classify_store_road(store: FacilityStore, x: int, y: int, road_type: str = "road") -> RoadConnection:
    """Classify a road tile using the store's tile index."""
    return classify_road(lambda rx, ry: store.has_type_at(Position(rx, ry), road_type), x, y)
