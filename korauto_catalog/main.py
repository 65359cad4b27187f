"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from korauto_catalog.adapters.inbound.http.routes import router
from korauto_catalog.infrastructure.wiring.dependencies import shutdown

# Load environment variables from .env file
load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cancel pending work of every live session, then close the API and Redis clients
    await shutdown()


app = FastAPI(
    title="Korauto Catalog",
    description="Cascading catalog filters with global sort and pagination",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(router)
