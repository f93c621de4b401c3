"""FastAPI application exposing insert/update/delete over HTTP."""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
import yaml

from src.core.config import Settings, load_settings
from src.core.dependencies import GatewayDependencies, build_dependencies
from src.core.results import OperationResult, insert_payload


LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/dev.yaml"

# Unreadable config, missing driver, unreachable database.
_STARTUP_ERRORS = (
    OSError,
    RuntimeError,
    ValueError,
    ImportError,
    SQLAlchemyError,
    yaml.YAMLError,
)


class InsertRequest(BaseModel):
    table: str = Field(..., min_length=1, description="Target table name")
    values: dict[str, Any] = Field(..., min_length=1, description="Column to value mapping")


class UpdateRequest(BaseModel):
    table: str = Field(..., min_length=1, description="Target table name")
    values: dict[str, Any] = Field(..., min_length=1, description="Columns to overwrite")
    where: str = Field(..., description="Raw predicate placed after WHERE")


class DeleteRequest(BaseModel):
    table: str = Field(..., min_length=1, description="Target table name")
    where: str = Field(..., description="Raw predicate placed after WHERE")


def _respond(result: OperationResult, payload: dict[str, Any]) -> JSONResponse:
    status_code = status.HTTP_200_OK if result.ok else status.HTTP_400_BAD_REQUEST
    return JSONResponse(payload, status_code=status_code)


def _format_validation_error(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = [str(item) for item in error.get("loc", ()) if item != "body"]
        message = str(error.get("msg", "Invalid request"))
        parts.append(f"{'.'.join(location)}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request body"


def create_app(
    config_path: str = DEFAULT_CONFIG_PATH,
    *,
    settings: Settings | None = None,
    dependencies: GatewayDependencies | None = None,
) -> FastAPI:
    LOGGER.info("Initialising table gateway with config '%s'", config_path)
    if settings is None:
        settings = load_settings(config_path)
    if dependencies is None:
        dependencies = build_dependencies(settings)
    executor = dependencies.executor

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        LOGGER.info("Disposing database engine")
        dependencies.close()

    app = FastAPI(title="SQL Table Gateway", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.dependencies = dependencies

    @app.exception_handler(RequestValidationError)
    async def decode_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _format_validation_error(exc)
        LOGGER.warning("Rejected request to %s: %s", request.url.path, message)
        return JSONResponse(
            {"success": False, "error": message},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/insert", response_model=None)
    def insert(payload: InsertRequest) -> JSONResponse:
        LOGGER.debug("Insert requested table=%s columns=%s", payload.table, list(payload.values))
        result = executor.insert(payload.table, payload.values)
        return _respond(result, insert_payload(result))

    @app.post("/update", response_model=None)
    def update(payload: UpdateRequest) -> JSONResponse:
        LOGGER.debug("Update requested table=%s columns=%s", payload.table, list(payload.values))
        result = executor.update(payload.table, payload.values, payload.where)
        return _respond(result, result.to_payload())

    @app.post("/delete", response_model=None)
    def delete(payload: DeleteRequest) -> JSONResponse:
        LOGGER.debug("Delete requested table=%s", payload.table)
        result = executor.remove(payload.table, payload.where)
        return _respond(result, result.to_payload())

    return app


def _configure_logging(debug: bool) -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        if debug:
            root_logger.setLevel(logging.DEBUG)
        return
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Launch the SQL table gateway")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to configuration file")
    parser.add_argument("--host", default=None, help="Interface to bind the server")
    parser.add_argument("--port", type=int, default=None, help="Port to bind the server")
    parser.add_argument("--debug", action="store_true", help="Log executed statements")
    args = parser.parse_args()

    _configure_logging(debug=args.debug)
    try:
        settings = load_settings(args.config)
        app = create_app(config_path=args.config, settings=settings)
    except _STARTUP_ERRORS as exc:
        LOGGER.error("Startup failed: %s", exc)
        raise SystemExit(1) from exc

    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise SystemExit("uvicorn must be installed to run the table gateway") from exc

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    LOGGER.info("Server listening on http://%s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
