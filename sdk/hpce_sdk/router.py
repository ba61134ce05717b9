"""
Segment placement for item ids.

Placement is a pure function of the item id and the segment count. There is
no hash ring: a topology with a different segment count invalidates every
placement computed under the old one.
"""

from __future__ import annotations


def segment_for(item: int, segment_count: int) -> int:
    """Return the index of the segment that owns an item.

    Args:
        item: Numeric item id
        segment_count: Number of segments in the open topology

    Returns:
        Segment index in [0, segment_count)

    Raises:
        ValueError: If segment_count is not positive
    """
    if segment_count <= 0:
        raise ValueError(f"segment_count must be positive, got {segment_count}")
    return int(item) % segment_count
