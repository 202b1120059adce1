# concession/domain/destination.py
"""
Destination of a checked-out order.

Modelled as a tagged union so that "delivery without seat coordinates"
cannot be represented: ``CounterA | CounterB | Delivery(side, sector, row, seat)``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping, Union

from concession.domain.enums import Role
from concession.domain.errors import InvalidRequest

MAX_SEAT_FIELD_LENGTH = 16


class DestinationKind(str, Enum):
    COUNTER_A = "counter_a"
    COUNTER_B = "counter_b"
    DELIVERY = "delivery"


class DeliverySide(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class CounterA:
    kind: ClassVar[DestinationKind] = DestinationKind.COUNTER_A


@dataclass(frozen=True)
class CounterB:
    kind: ClassVar[DestinationKind] = DestinationKind.COUNTER_B


@dataclass(frozen=True)
class Delivery:
    kind: ClassVar[DestinationKind] = DestinationKind.DELIVERY

    side: DeliverySide
    sector: int
    row: str
    seat: str

    def __post_init__(self):
        object.__setattr__(self, "side", parse_side(self.side))
        object.__setattr__(self, "sector", parse_sector(self.sector))
        object.__setattr__(self, "row", parse_seat_field(self.row, "row"))
        object.__setattr__(self, "seat", parse_seat_field(self.seat, "seat"))

    def as_dict(self) -> dict:
        return {
            "side": self.side.value,
            "sector": self.sector,
            "row": self.row,
            "seat": self.seat,
        }


Destination = Union[CounterA, CounterB, Delivery]


def parse_side(value: Any) -> DeliverySide:
    if isinstance(value, DeliverySide):
        return value
    try:
        return DeliverySide(str(value).strip().lower())
    except ValueError:
        raise InvalidRequest(f"Unknown delivery side: {value!r}")


def parse_sector(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidRequest(f"Sector must be a positive number, got {value!r}")
    try:
        sector = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidRequest(f"Sector must be a positive number, got {value!r}")
    if sector < 1:
        raise InvalidRequest(f"Sector must be a positive number, got {value!r}")
    return sector


def parse_seat_field(value: Any, field: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise InvalidRequest(f"Delivery {field} is required")
    if len(text) > MAX_SEAT_FIELD_LENGTH:
        raise InvalidRequest(
            f"Delivery {field} is too long (max {MAX_SEAT_FIELD_LENGTH} characters)"
        )
    return text


def build_destination(selector: Any, coordinates: Mapping[str, Any] | None = None) -> Destination:
    """
    Turns an opaque selector string (and coordinates for delivery) into a
    Destination. Raises InvalidRequest when the selector is unknown or the
    delivery coordinates are incomplete.
    """
    if isinstance(selector, (CounterA, CounterB, Delivery)):
        return selector

    try:
        if isinstance(selector, DestinationKind):
            kind = selector
        else:
            kind = DestinationKind(str(selector).strip().lower())
    except ValueError:
        raise InvalidRequest(f"Unknown destination: {selector!r}")

    if kind is DestinationKind.COUNTER_A:
        return CounterA()
    if kind is DestinationKind.COUNTER_B:
        return CounterB()

    coordinates = coordinates or {}
    missing = [k for k in ("side", "sector", "row", "seat") if coordinates.get(k) in (None, "")]
    if missing:
        raise InvalidRequest(f"Delivery coordinates incomplete, missing: {', '.join(missing)}")

    return Delivery(
        side=coordinates["side"],
        sector=coordinates["sector"],
        row=coordinates["row"],
        seat=coordinates["seat"],
    )


# staff role -> the only destination it serves; customers serve none
ROLE_DESTINATIONS = {
    Role.COUNTER_A_STAFF: DestinationKind.COUNTER_A,
    Role.COUNTER_B_STAFF: DestinationKind.COUNTER_B,
    Role.DELIVERY_STAFF: DestinationKind.DELIVERY,
}


def scope_for_role(role: Any) -> DestinationKind | None:
    try:
        return ROLE_DESTINATIONS.get(Role(role))
    except ValueError:
        raise InvalidRequest(f"Unknown role: {role!r}")
