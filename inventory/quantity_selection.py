"""
Per-line quantity selection for dispatch and receipt.

A caller either leaves a line out of the payload, meaning "take whatever is
still outstanding", or lists it with an explicit quantity. Zero is a valid
explicit value and skips the line.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Union
from uuid import UUID


@dataclass(frozen=True)
class Remaining:
    """Use the outstanding quantity of the line."""

    def resolve(self, outstanding: Decimal) -> Decimal:
        return outstanding


@dataclass(frozen=True)
class Explicit:
    quantity: Decimal
    location_id: Optional[UUID] = None

    def resolve(self, outstanding: Decimal) -> Decimal:
        return self.quantity


QuantitySelection = Union[Remaining, Explicit]

REMAINING = Remaining()


def build_selections(lines: Optional[Iterable[dict]], quantity_key: str) -> Dict[UUID, Explicit]:
    """
    Map ``delivery_note_item_id`` to an ``Explicit`` selection for each listed line.

    Lines missing from the result resolve to ``REMAINING``.
    """
    selections: Dict[UUID, Explicit] = {}
    for line in lines or []:
        item_id = UUID(str(line['delivery_note_item_id']))
        selections[item_id] = Explicit(
            quantity=Decimal(str(line[quantity_key])),
            location_id=line.get('location_id'),
        )
    return selections


def selection_for(selections: Dict[UUID, Explicit], item_id) -> QuantitySelection:
    return selections.get(item_id, REMAINING)
