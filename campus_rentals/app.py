import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from core.errors import DomainError
from core.exception_handler import DomainErrorHandler, ValidationErrorHandler
from core.lifespan import lifespan
from core.settings import settings
from routes.favorite_routes import router as favorite_router
from routes.listing_routes import router as listing_router
from routes.rental_routes import router as rental_router
from routes.user_routes import router as user_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="1.0.0",
)

app.include_router(listing_router, prefix="/v1/listings")
app.include_router(rental_router, prefix="/v1/rentals")
app.include_router(favorite_router, prefix="/v1/favorites")
app.include_router(user_router, prefix="/v1/users")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


app.add_exception_handler(DomainError, DomainErrorHandler())
app.add_exception_handler(RequestValidationError, ValidationErrorHandler())


if __name__ == "__main__":
    uvicorn.run("app:app", host="127.0.0.1", port=8001, reload=True)
