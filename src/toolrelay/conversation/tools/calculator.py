"""
Calculator tool for the toolrelay orchestrator.

A pure in-process arithmetic tool over two numbers.  Division by zero is
reported to the model as a tool error rather than a numeric result.
"""

from __future__ import annotations

import logging
import operator
from typing import Any, Callable

from toolrelay.conversation.providers import ParameterSpec, ToolSpec
from toolrelay.conversation.tools.registry import AsyncToolHandler, ToolExecutionError

logger = logging.getLogger(__name__)

_OPERATIONS: dict[str, Callable[[float, float], float]] = {
    "add": operator.add,
    "subtract": operator.sub,
    "multiply": operator.mul,
    "divide": operator.truediv,
}


class CalculatorTool:
    """Performs one of four arithmetic operations on two numbers.

    Attributes:
        TOOL_SPEC: Ready-to-register ``ToolSpec``.
    """

    TOOL_SPEC: ToolSpec = ToolSpec(
        name="calculate",
        description="Perform a mathematical calculation",
        parameters={
            "operation": ParameterSpec(
                type="string",
                description="The mathematical operation to perform",
                enum=tuple(_OPERATIONS),
            ),
            "a": ParameterSpec(type="number", description="The first number"),
            "b": ParameterSpec(type="number", description="The second number"),
        },
        required=frozenset({"operation", "a", "b"}),
    )

    def calculate(self, operation: str, a: float, b: float) -> str:
        """Apply *operation* to *a* and *b* and format the equation.

        Returns:
            A string such as ``"150.00 divide 5.00 = 30.00"``.

        Raises:
            ToolExecutionError: On division by zero or an unknown operation.
        """
        logger.info("Executing tool: calculate (%s, a=%s, b=%s)", operation, a, b)
        func = _OPERATIONS.get(operation)
        if func is None:
            raise ToolExecutionError(f"Unknown operation: {operation}")
        if operation == "divide" and b == 0:
            raise ToolExecutionError("Division by zero")
        result = func(a, b)
        return f"{a:.2f} {operation} {b:.2f} = {result:.2f}"

    def as_handler(self) -> AsyncToolHandler:
        """Return an async handler for ``ToolRegistry.register``."""

        async def _call(args: dict[str, Any]) -> str:
            return self.calculate(args["operation"], args["a"], args["b"])

        return _call
