"""Four-operator calculator exposed over HTTP and as an MCP tool.

Every request is validated in full before anything is computed:
method, body shape, operator, and (for division) a zero divisor.
"""

import logging
import math
import operator
from typing import Callable

from pydantic import BaseModel, ConfigDict, ValidationError
from starlette.endpoints import HTTPEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger("mcp-link-calculator")


OPERATIONS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


# Overflow to inf has no JSON representation
NON_FINITE_RESULT = "Result is not a finite number"


class CalculatorError(Exception):
    """A request-level failure, rendered as a JSON error response."""

    status_code = 400
    message = "Bad request"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MethodNotAllowed(CalculatorError):
    status_code = 405
    message = "Method not allowed"


class InvalidFormat(CalculatorError):
    message = "Invalid request format"


class UnsupportedOperator(CalculatorError):
    message = "Invalid operator. Use +, -, *, or /"


class DivisionByZero(CalculatorError):
    message = "Division by zero is not allowed"


class CalculationRequest(BaseModel):
    """Body of ``POST /calculator``."""

    # Operands must be JSON numbers; absent fields behave as zero values.
    model_config = ConfigDict(strict=True, allow_inf_nan=False, frozen=True)

    operand1: float = 0.0
    operand2: float = 0.0
    operator: str = ""

    @classmethod
    def parse(cls, body: bytes) -> "CalculationRequest":
        try:
            return cls.model_validate_json(body)
        except ValidationError as e:
            raise InvalidFormat() from e


class CalculationResult(BaseModel):
    """Exactly one of ``result`` and ``error`` is set."""

    result: float | None = None
    error: str | None = None

    def payload(self) -> dict:
        return self.model_dump(exclude_none=True)


def evaluate(request: CalculationRequest) -> float:
    """Apply the requested operation, raising ``CalculatorError`` on bad input."""
    operation = OPERATIONS.get(request.operator)
    if operation is None:
        raise UnsupportedOperator()

    if request.operator == "/" and request.operand2 == 0:
        raise DivisionByZero()

    return operation(request.operand1, request.operand2)


def calculate(request: CalculationRequest) -> CalculationResult:
    try:
        value = evaluate(request)
    except CalculatorError as e:
        return CalculationResult(error=e.message)

    if not math.isfinite(value):
        return CalculationResult(error=NON_FINITE_RESULT)
    return CalculationResult(result=value)


def error_response(error: CalculatorError) -> JSONResponse:
    headers = {"Allow": "POST"} if isinstance(error, MethodNotAllowed) else None
    return JSONResponse(
        CalculationResult(error=error.message).payload(),
        status_code=error.status_code,
        headers=headers,
    )


class CalculatorEndpoint(HTTPEndpoint):
    """``/calculator``: only POST computes, every other verb is a 405."""

    async def method_not_allowed(self, request: Request) -> JSONResponse:
        return error_response(MethodNotAllowed())

    async def post(self, request: Request) -> JSONResponse:
        try:
            calc_request = CalculationRequest.parse(await request.body())
            value = evaluate(calc_request)
        except CalculatorError as e:
            return error_response(e)

        if not math.isfinite(value):
            logger.error(f"Error encoding response: {value!r} has no JSON representation")
            return JSONResponse({"error": NON_FINITE_RESULT}, status_code=500)

        return JSONResponse(CalculationResult(result=value).payload())
