# app/api/v1/api.py
from fastapi import APIRouter

from app.api.v1.endpoints import auth, books, borrows, librarians, notifications, reservations, users

api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(auth.router, prefix="/auth")
api_router_v1.include_router(users.router, prefix="/users")
api_router_v1.include_router(books.router, prefix="/books")
api_router_v1.include_router(borrows.router, prefix="/borrow")
api_router_v1.include_router(reservations.router, prefix="/reservations")
api_router_v1.include_router(notifications.router, prefix="/notifications")
api_router_v1.include_router(librarians.router, prefix="/librarians")
