from typing import List, Sequence, TypeVar

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive slices of `size`; the last slice may be shorter."""
    if not isinstance(items, (list, tuple)) or size <= 0:
        return []
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
