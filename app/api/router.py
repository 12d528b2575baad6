from fastapi import APIRouter
from app.api.endpoints import aichat

api_router = APIRouter()

# Combine all sub-routers into one; account, category and transaction CRUD live in their own service
api_router.include_router(aichat.router)
