from typing import Any

from fastapi import APIRouter, Depends

from ..auth import require_principal
from ..dependencies import DispatchServiceDep

router = APIRouter(dependencies=[Depends(require_principal)])


@router.get("")
def list_drivers(dispatch: DispatchServiceDep) -> list[dict[str, Any]]:
    """All registered drivers in registration order, with availability."""
    return [driver.to_snapshot() for driver in dispatch.list_drivers()]


@router.get("/{driver_id}")
def get_driver(driver_id: str, dispatch: DispatchServiceDep) -> dict[str, Any]:
    return dispatch.get_driver(driver_id).to_snapshot()
