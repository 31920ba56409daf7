from fastapi import APIRouter
from app.api.endpoints import schema, generate, query, export

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(schema.router)
api_router.include_router(generate.router)
api_router.include_router(query.router)
api_router.include_router(export.router)
