"""
Dashboard section layout.

The dashboard shows a fixed set of sections in a user-chosen order. The order
changes only through ``reorder``; the drag interaction that leads to a reorder
is modelled by ``DragState`` and never persisted.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging

from ..store import PersistentStore, SECTION_ORDER_KEY

logger = logging.getLogger(__name__)

READING_STATUS = "reading-status"
MY_LIBRARY = "my-library"

SECTION_KEYS = (READING_STATUS, MY_LIBRARY)


def move_before(sequence: Sequence[str], item: str, anchor: str) -> List[str]:
    """
    Move ``item`` to the position ``anchor`` occupies.

    The target index is taken before ``item`` is removed, so moving an item
    forward lands it just after the anchor and moving it backward lands it
    just before the anchor:

        >>> move_before(["a", "b", "c"], "a", "b")
        ['b', 'a', 'c']
        >>> move_before(["a", "b", "c"], "c", "a")
        ['c', 'a', 'b']

    Returns a new list; the input is unchanged when ``item == anchor`` or
    either is missing.
    """
    order = list(sequence)
    if item == anchor or item not in order or anchor not in order:
        return order

    target = order.index(anchor)
    order.remove(item)
    order.insert(target, item)
    return order


@dataclass
class DragState:
    """
    Transient state of a section drag.

    ``dragged`` is the section picked up, ``highlighted`` the section
    currently hovered as a drop target.
    """
    dragged: Optional[str] = None
    highlighted: Optional[str] = None

    def pick_up(self, key: str) -> None:
        self.dragged = key
        self.highlighted = None

    def hover(self, key: str) -> None:
        """Highlight a drop target; the dragged section is never one."""
        if self.dragged is not None and key != self.dragged:
            self.highlighted = key

    def leave(self) -> None:
        self.highlighted = None

    def cancel(self) -> None:
        self.dragged = None
        self.highlighted = None

    def drop(self, target: str) -> Optional[Tuple[str, str]]:
        """
        Finish the drag on ``target``.

        Returns:
            ``(dragged, target)`` to pass to ``reorder``, or None when nothing
            was picked up
        """
        dragged = self.dragged
        self.cancel()
        if dragged is None:
            return None
        return dragged, target


class LayoutService:
    """Service for the persisted dashboard section order."""

    def __init__(self, store: PersistentStore):
        self.store = store

    def get_order(self) -> List[str]:
        """
        Get the section order.

        Unknown keys in the stored order are dropped and sections missing from
        it are appended, so the result always holds every section once.
        """
        stored = self.store.read(SECTION_ORDER_KEY, list(SECTION_KEYS))
        if not isinstance(stored, list):
            stored = list(SECTION_KEYS)
        order = [k for k in dict.fromkeys(stored) if k in SECTION_KEYS]
        order.extend(k for k in SECTION_KEYS if k not in order)
        return order

    def reorder(self, dragged: str, target: str) -> List[str]:
        """
        Move ``dragged`` to ``target``'s position and persist the order.

        No-op when the keys are equal or either is not a section.

        Returns:
            The resulting order
        """
        order = self.get_order()
        new_order = move_before(order, dragged, target)
        if new_order != order:
            self.store.write(SECTION_ORDER_KEY, new_order)
            logger.debug(f"Moved section {dragged} to {target}: {new_order}")
        return new_order

    def drop(self, drag: DragState, target: str) -> List[str]:
        """Complete a drag interaction, reordering if something was dragged."""
        move = drag.drop(target)
        if move is None:
            return self.get_order()
        return self.reorder(*move)
