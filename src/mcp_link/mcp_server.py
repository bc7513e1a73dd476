from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError
from typing import Any

from .calculator import CalculationRequest, InvalidFormat, calculate as run_calculation

# Tools served over the SSE transport (see transport.py)
mcp = FastMCP("mcp-link")


@mcp.tool()
async def calculate(operand1: float, operand2: float, operator: str) -> dict[str, Any]:
    """
    Apply a basic arithmetic operation to two numbers.
    Args:
        operator: One of "+", "-", "*" or "/".
    """
    try:
        request = CalculationRequest(operand1=operand1, operand2=operand2, operator=operator)
    except ValidationError:
        return {"error": InvalidFormat.message}

    return run_calculation(request).payload()
