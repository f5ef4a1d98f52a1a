"""Worker process for evaluating arithmetic expressions."""
from multiprocessing.connection import Connection
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safe_calculator.common.display import DEFAULT_PRECISION, round_result
from safe_calculator.common.errors import EvaluationError
from safe_calculator.common.logger import logger
from safe_calculator.common.operations import OperationFailure, OperationResult
from safe_calculator.common.parser import ExpressionParser


class WorkerProcess(BaseModel):
    """
    Worker process responsible for evaluating a single arithmetic expression.

    Lifecycle:
        - Spawned by the parent server process
        - Receives one expression only
        - Sends an OperationResult or OperationFailure (as a dict) through a Pipe
        - Terminates immediately after computation
    """

    # Make the Pydantic instance immutable (read-only) for safety
    # Allow arbitrary types like multiprocessing.Connection
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    conn: Connection = Field(..., description="Connection object for sending results back to server")
    expression: str = Field(..., description="Single arithmetic expression to evaluate")
    line_number: int = Field(..., ge=1, description="Line number in the input file")
    precision: int = Field(default=DEFAULT_PRECISION, ge=0, le=15, description="Decimal places kept in results")
    strict_decimals: bool = Field(default=False, description="Reject a second decimal point inside one literal")

    @field_validator("expression")
    def expression_must_not_be_empty(cls, v: str) -> str:
        """Ensure that the expression is not empty."""
        if not v.strip():
            raise ValueError("Expression cannot be empty")
        return v

    def run(self) -> None:
        """
        Evaluate the arithmetic expression and send the result or error through the pipe.

        :return: None
        """
        logger.info(f"👷🏁 Worker started on line {self.line_number}: {self.expression}")

        result: Union[float, None] = None

        try:
            result = round_result(
                ExpressionParser.evaluate(self.expression, strict_decimals=self.strict_decimals),
                self.precision,
            )
            payload = OperationResult(line=self.line_number, expression=self.expression, result=result)

        except EvaluationError as exc:
            logger.error(
                f"👷❌ Worker failed on line {self.line_number}: {exc}\n"
                f"Invalid arithmetic expression, could not evaluate: {self.expression!r}"
            )
            payload = OperationFailure(
                line=self.line_number,
                expression=self.expression,
                kind=exc.kind,
                error=str(exc),
            )

        try:
            # mode="json" keeps the enum as its plain string value across the pipe
            self.conn.send(payload.model_dump(mode="json"))
        finally:
            # Always close the connection
            self.conn.close()

            if result is not None:
                logger.info(f"👷✅ Worker finished on line {self.line_number}: {result}")
