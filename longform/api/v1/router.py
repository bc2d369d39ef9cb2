"""API v1 router aggregator."""

from fastapi import APIRouter

from longform.api.v1.articles.routes import router as articles_router
from longform.api.v1.jobs.routes import router as jobs_router

api_router = APIRouter()

api_router.include_router(articles_router, prefix="/articles", tags=["Articles"])
api_router.include_router(jobs_router, prefix="/jobs", tags=["Jobs"])
