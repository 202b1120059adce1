# concession/domain/errors.py
from concession.domain.enums import ResultCode


class OrderEngineError(Exception):
    """Base for expected failures inside the order core.

    Repositories raise these; the engine boundary turns them into an
    ``Outcome`` so they never reach the caller as exceptions.
    """

    code = ResultCode.INVALID


class NotFoundError(OrderEngineError):
    code = ResultCode.NOT_FOUND


class PreconditionFailed(OrderEngineError):
    code = ResultCode.PRECONDITION_FAILED


class InvalidRequest(OrderEngineError):
    code = ResultCode.INVALID


class StoreUnavailable(OrderEngineError):
    code = ResultCode.STORE_UNAVAILABLE
