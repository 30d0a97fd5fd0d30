"""Fixed default rating table; the set of entities that may be voted on."""
from __future__ import annotations

DEFAULT_RATING = 1000

_ENTITIES = (
    "dalle_desc_25",
    "dalle_desc_50",
    "dalle_desc_100",
    "dalle_desc_150",
    "dalle_desc_250",
    "desc_25_threshold_250",
    "desc_25_threshold_500",
    "desc_25_threshold_1000",
    "desc_250_threshold_250",
    "desc_250_threshold_500",
    "desc_250_threshold_1000",
    "jpeg_scale_2",
    "jpeg_scale_4",
    "jpeg_scale_8",
    "jpeg_scale_16",
    "jpeg_scale_32",
    "sa30_desc_50",
    "sa30_desc_100",
    "sa30_desc_150",
    "sa30_desc_250",
    "sd30_desc_25",
    "sd35_desc_25",
    "sd35_desc_50",
    "sd35_desc_100",
    "sd35_desc_150",
    "sd35_desc_250",
)

DEFAULT_LEADERBOARD: dict[str, int] = {name: DEFAULT_RATING for name in _ENTITIES}
