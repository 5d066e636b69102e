from logging import Logger
import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.flow.exceptions import FlowGraphError, FlowValidationError
from src.models.schemas.responses import ErrorResponse


class AppException(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class BadRequestException(AppException):
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message)


class ExceptionHandler:
    def __init__(self, logger: Logger):
        self.logger = logger

    def handle_exception(self, e: Exception, request_id: str) -> JSONResponse:
        if isinstance(e, AppException):
            self.logger.error(f"App error: {e.message}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=e.status_code,
                content=ErrorResponse(errorMessage=e.message).model_dump(),
            )
        if isinstance(e, FlowValidationError):
            self.logger.error(f"Flow validation error: {e}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content=ErrorResponse(
                    errorMessage=e.message,
                    details=e.details,
                ).model_dump(),
            )
        if isinstance(e, (FlowGraphError, ValueError)):
            self.logger.error(f"Value error: {str(e)}", extra={"request_id": request_id})
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=ErrorResponse(errorMessage=f"validation error: {e}").model_dump(),
            )
        tb_str = traceback.format_exc()
        self.logger.error(
            f"Internal error - Type: {type(e).__name__}, Message: {str(e)}\nTraceback:\n{tb_str}",
            extra={"request_id": request_id},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(errorMessage="an internal error just occurred").model_dump(),
        )


def add_exception_handlers(app: FastAPI, logger: Logger) -> None:
    handler = ExceptionHandler(logger)

    async def _handle(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "id", "unknown")
        return handler.handle_exception(exc, request_id)

    app.add_exception_handler(AppException, _handle)
    app.add_exception_handler(FlowGraphError, _handle)
    app.add_exception_handler(Exception, _handle)
