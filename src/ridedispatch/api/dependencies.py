"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from ..matching.dispatch_service import DispatchService


def get_dispatch_service(request: Request) -> DispatchService:
    """Retrieve DispatchService from app state."""
    return request.app.state.dispatch_service


DispatchServiceDep = Annotated[DispatchService, Depends(get_dispatch_service)]
