from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from .endpoints import pipelines
from ..utils.logger import setup_logger
from ..datacls.messages import ErrorResponse
from ..exceptions import (
    IndexBuilderError,
    ConfigurationError,
    MissingCredentialsError,
)

app = FastAPI(title="IndexBuilder API")


@app.on_event("startup")
async def startup_event():
    setup_logger()


# Exception Handler
@app.exception_handler(IndexBuilderError)
async def indexbuilder_exception_handler(request: Request, exc: IndexBuilderError):
    status_code = 500  # Default
    if isinstance(exc, ConfigurationError):
        status_code = 422
    elif isinstance(exc, MissingCredentialsError):
        status_code = 400

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=exc.__class__.__name__, message=str(exc)).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # bodies may carry registry credentials; inputs are never echoed
    errors = [{key: value for key, value in error.items() if key in ("type", "loc", "msg")} for error in exc.errors()]
    return JSONResponse(status_code=422, content=jsonable_encoder({"detail": errors}))


# Router
app.include_router(pipelines.router, prefix="/api", tags=["Pipelines"])
