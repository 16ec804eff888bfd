import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from customer_directory.api.routes import router
from customer_directory.core.config import settings
from customer_directory.core.errors import (
    CustomerDirectoryError,
    directory_error_handler,
    validation_error_handler,
)
from customer_directory.data_access.database import create_db_and_tables


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handles system startup and shutdown events.

    Initializes logging and makes sure the user store tables exist.
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler()] # This sends it to the Terminal
    )

    create_db_and_tables()

    yield

# Define the FastAPI app with metadata for Swagger UI
app = FastAPI(
    title="Customer Directory API",
    description="Read-only listing of customer accounts with cross-storage search and pagination",
    version="1.0.0",
    lifespan=lifespan
)

app.add_exception_handler(CustomerDirectoryError, directory_error_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]

# Include our routes
app.include_router(router)
