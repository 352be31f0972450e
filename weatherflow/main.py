"""Main FastAPI application for the weather alert workflow engine."""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI

from weatherflow.api.endpoints import router, init_dependencies
from weatherflow.config import AppConfig, get_config
from weatherflow.core.execution_engine import ExecutionEngine
from weatherflow.core.handler_registry import HandlerRegistry, create_default_registry
from weatherflow.core.logging import setup_logging, get_logger
from weatherflow.core.middleware import ErrorHandlingMiddleware
from weatherflow.services.open_meteo import GeocodingClient, WeatherClient
from weatherflow.storage.database import create_tables, get_database_engine
from weatherflow.storage.repository import WorkflowRepository


def build_registry(config: AppConfig) -> HandlerRegistry:
    """Wire the built-in handlers with configured service clients."""
    return create_default_registry(
        geocoding_client=GeocodingClient(config.geocoding_url, timeout=config.http_timeout),
        weather_client=WeatherClient(timeout=config.http_timeout),
        email_sender=config.email_sender
    )


def create_app(
    config: Optional[AppConfig] = None,
    repository: Optional[WorkflowRepository] = None,
    handler_registry: Optional[HandlerRegistry] = None
) -> FastAPI:
    """Create the FastAPI application.

    ``repository`` and ``handler_registry`` default to the database-backed
    repository and the built-in handlers; tests pass their own.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.log_structured
        )
        logger = get_logger(__name__)
        logger.info(f"Starting {config.app_name}")

        workflow_repository = repository
        if workflow_repository is None:
            get_database_engine(config)
            create_tables()
            logger.info("Database tables created")
            workflow_repository = WorkflowRepository()

        execution_engine = ExecutionEngine(
            handler_registry or build_registry(config),
            condition_met_label=config.condition_met_label,
            condition_not_met_label=config.condition_not_met_label
        )

        init_dependencies(repository=workflow_repository, execution_engine=execution_engine)
        logger.info("Core components initialized")

        yield

        logger.info(f"Shutting down {config.app_name}")

    app = FastAPI(
        title=config.app_name,
        description="Executes weather alert workflows: form input, weather lookup, threshold check and email",
        version=config.app_version,
        lifespan=lifespan
    )
    app.add_middleware(ErrorHandlingMiddleware)
    app.include_router(router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "weatherflow"}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), **get_config().get_uvicorn_config())
