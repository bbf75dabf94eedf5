"""
Exception to HTTP mapping and global exception handlers
"""
import traceback
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from core.logging_config import get_logger
from domain.common.exceptions import BusinessException, ErrorKind
from shared.codes import BusinessCode
from .response import error_response


# Category decides the status; a few codes need a sharper answer
KIND_TO_HTTP_STATUS = {
    ErrorKind.VALIDATION: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.RULE_VIOLATION: http_status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    ErrorKind.PROCESSOR: http_status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CONFLICT: http_status.HTTP_409_CONFLICT,
    ErrorKind.FATAL: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}

CODE_TO_HTTP_STATUS = {
    BusinessCode.ORDER_ALREADY_PAID: http_status.HTTP_409_CONFLICT,
    BusinessCode.PAYMENT_IN_PROGRESS: http_status.HTTP_409_CONFLICT,
    BusinessCode.IDENTIFIER_GENERATION_FAILED: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_status_for(exc: BusinessException) -> int:
    try:
        return CODE_TO_HTTP_STATUS[BusinessCode(exc.code)]
    except (ValueError, KeyError):
        return KIND_TO_HTTP_STATUS.get(exc.kind, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(getattr(request, "state", object()), "request_id", None) or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI):
    logger = get_logger(__name__)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        request_id = _request_id(request)
        status_code = http_status_for(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "business_exception",
            request_id=request_id,
            code=int(exc.code),
            error_type=exc.error_type,
            kind=exc.kind.value,
            error_message=exc.message,
        )
        response = error_response(
            code=exc.code,
            message=exc.message,
            error_type=exc.error_type,
            details=exc.details,
            field=exc.field,
            request_id=request_id,
            kind=exc.kind.value,
        )
        return JSONResponse(status_code=status_code, content=response.model_dump(mode='json'))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        request_id = _request_id(request)
        errors = exc.errors()

        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])

        response = error_response(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=f"Validation failed: {first_error.get('msg', 'unknown')}",
            error_type="ValidationError",
            details={"errors": errors},
            field=field,
            request_id=request_id,
            kind=ErrorKind.VALIDATION.value,
        )
        return JSONResponse(
            status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=response.model_dump(mode='json')
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        request_id = _request_id(request)

        code_mapping = {
            404: BusinessCode.NOT_FOUND,
            500: BusinessCode.SYSTEM_ERROR,
            503: BusinessCode.SERVICE_UNAVAILABLE,
        }
        code = code_mapping.get(exc.status_code, BusinessCode.PARAM_ERROR if exc.status_code < 500 else BusinessCode.SYSTEM_ERROR)

        response = error_response(
            code=code,
            message=str(exc.detail),
            error_type="HTTPError",
            details={"status_code": exc.status_code},
            request_id=request_id,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=response.model_dump(mode='json'),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = _request_id(request)

        details = None
        if app.debug:
            details = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        response = error_response(
            code=BusinessCode.SYSTEM_ERROR,
            message="Internal server error",
            error_type="SystemError",
            details=details,
            request_id=request_id,
            kind=ErrorKind.FATAL.value,
        )

        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )

        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response.model_dump(mode='json')
        )
