"""Materialized pin lists: the home feed and "more like this" lists."""

from .home import read_home_feed_page, regenerate_home_feed
from .more_like import (
    generate_board_more_like,
    generate_pin_more_like,
    generate_section_more_like,
    read_board_more_like,
    read_pin_more_like,
    read_section_more_like,
)

__all__ = [
    "generate_board_more_like",
    "generate_pin_more_like",
    "generate_section_more_like",
    "read_board_more_like",
    "read_home_feed_page",
    "read_pin_more_like",
    "read_section_more_like",
    "regenerate_home_feed",
]
