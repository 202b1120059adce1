# concession/domain/outcome.py
from dataclasses import dataclass
from typing import Iterable, Tuple

from concession.domain.entities import Order
from concession.domain.enums import ResultCode
from concession.domain.errors import OrderEngineError


@dataclass(frozen=True)
class Outcome:
    """Result of an order engine operation. Truthy only on success."""

    code: ResultCode
    message: str = ""
    order: Order | None = None
    orders: Tuple[Order, ...] = ()

    @property
    def ok(self) -> bool:
        return self.code is ResultCode.OK

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, order: Order | None = None, message: str = "") -> "Outcome":
        return cls(ResultCode.OK, message, order)

    @classmethod
    def listing(cls, orders: Iterable[Order]) -> "Outcome":
        return cls(ResultCode.OK, orders=tuple(orders))

    @classmethod
    def from_error(cls, error: OrderEngineError, order: Order | None = None) -> "Outcome":
        return cls(error.code, str(error), order)
