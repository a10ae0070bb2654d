from .actions import (
    Action,
    CoordinateMapping,
    Flip,
    ResizeByFactor,
    ResizeTo,
    apply_actions,
    parse_actions,
)
from .region import Rect, crop, parse_region
from .template import (
    LocateResult,
    Match,
    MatchEngine,
    check_method,
    match_pair,
)
from .utils import (
    read_image,
    write_image,
    to_bgr,
)

__all__ = [
    "Action",
    "CoordinateMapping",
    "Flip",
    "ResizeByFactor",
    "ResizeTo",
    "apply_actions",
    "parse_actions",
    "Rect",
    "crop",
    "parse_region",
    "LocateResult",
    "Match",
    "MatchEngine",
    "check_method",
    "match_pair",
    "read_image",
    "write_image",
    "to_bgr",
]
