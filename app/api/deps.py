# app/api/deps.py
from fastapi import Request

from app.services.container import LibraryServices


def get_services(request: Request) -> LibraryServices:
    return request.app.state.services
