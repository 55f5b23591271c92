import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pet_directory.config import settings
from pet_directory.database import close_mongo_connection, connect_to_mongo
from pet_directory.routers.business import router as business_router
from pet_directory.routers.health import router as health_router
from pet_directory.routers.reviews import router as reviews_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    await connect_to_mongo()
    try:
        yield
    finally:
        await close_mongo_connection()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Directory of local pet businesses with proximity search and review ratings.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(business_router)
app.include_router(reviews_router)


def run() -> None:
    uvicorn.run("pet_directory.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
