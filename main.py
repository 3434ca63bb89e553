import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

from config import get_settings
from db_models import ErrorResponse, FinalResponse, IdentifyRequest
from db_setup import init_db
from errors import InconsistentStateError, StorageError, ValidationError
from identity import identify as identify_contact
from logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db(get_settings().db.path)
    logger.info("Application starting up")

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title=get_settings().app_name,
    version=get_settings().version,
    debug=get_settings().debug,
    lifespan=lifespan,
)


def _error(status_code: int, error: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=str(exc)).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc: ValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, "validation_error", exc)


@app.exception_handler(StorageError)
async def storage_error_handler(request, exc: StorageError):
    logger.error(f"Storage error: {exc}", exc_info=exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "storage_error", exc)


@app.exception_handler(InconsistentStateError)
async def inconsistent_state_handler(request, exc: InconsistentStateError):
    logger.error(f"Inconsistent contact state: {exc}", exc_info=exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "inconsistent_state", exc)


@app.get("/")
async def root():
    return {"message": f"{get_settings().app_name} is up"}


@app.get("/health")
async def health():
    return {"status": "ok", "version": get_settings().version}


@app.post("/identify", response_model=FinalResponse)
def identify(request: IdentifyRequest):
    # plain def: blocking sqlite work runs in the threadpool
    result = identify_contact(request.email, request.phoneNumber)
    return result.to_response()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
