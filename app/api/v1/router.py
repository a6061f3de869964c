from fastapi import APIRouter

from app.api.routers import contracts, rental_requests

api_router = APIRouter()

api_router.include_router(rental_requests.router)
api_router.include_router(contracts.router)
