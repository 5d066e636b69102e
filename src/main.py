from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from src.api.fastapi import FastAPIApp
from src.core.config import settings
from src.services.catalog import CatalogClient
from src.utils.exception import add_exception_handlers
from src.utils.logging import configure_logging
from src.utils.logging.base_logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Starting up {settings.app_name}")
    app.state.catalog_client = CatalogClient(settings)

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await app.state.catalog_client.close()


app_instance = FastAPIApp(lifespan=lifespan)
app = app_instance.get_app()

add_exception_handlers(app, logger)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
