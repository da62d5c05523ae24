import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import config
from db import create_db_and_tables
from middleware.request_context import RequestContextMiddleware
from utils.error_handler import register_exception_handlers
from web.cart_router import cart_router
from web.category_router import category_router
from web.order_router import order_router
from web.product_router import product_router
from web.user_router import profile_router, user_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup
    await create_db_and_tables()
    logging.info(f"[Startup] Shop API ready ({config.RUNTIME_ENVIRONMENT.value})")

    yield

    # Shutdown
    logging.warning('Shutting down..')


app = FastAPI(title="Shop API", lifespan=lifespan)

app.add_middleware(RequestContextMiddleware)

if config.CORS_ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", config.GUEST_TOKEN_HEADER],
    )
    logging.info(f"[Startup] CORS middleware enabled for origins: {config.CORS_ALLOWED_ORIGINS}")
else:
    logging.debug("[Startup] CORS middleware disabled (no allowed origins configured)")

register_exception_handlers(app)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(category_router)
app.include_router(product_router)
app.include_router(user_router)
app.include_router(profile_router)

# Uploaded product images (LocalImageStorage writes here)
Path(config.IMAGE_STORAGE_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=config.IMAGE_STORAGE_DIR), name="static")


# Health check endpoint (for Docker container monitoring)
@app.get("/health")
async def health_check():
    """Health check endpoint for Docker healthcheck."""
    return {"status": "healthy"}


def main() -> None:
    uvicorn.run(app, host=config.WEBAPP_HOST, port=config.WEBAPP_PORT)
