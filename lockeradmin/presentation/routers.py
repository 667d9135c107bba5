from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from lockeradmin.core.errors import (
    ConfirmationRequired,
    ConnectivityError,
    NotFoundError,
    ValidationError,
    WriteInProgress,
)
from lockeradmin.schemas.models import (
    BulkPriceOut,
    BulkPriceRequest,
    LockerCreate,
    LockerList,
    LockerOut,
    LockerOverview,
    LockToggled,
    PriceUpdate,
    UsageStatsOut,
)
from lockeradmin.services.dashboard_service import (
    Dashboard,
    bulk_apply_price_service,
    create_locker_service,
    delete_locker_service,
    get_locker_overview_service,
    get_usage_stats_service,
    list_lockers_service,
    toggle_lock_service,
    update_price_service,
)

router = APIRouter()


def get_dashboard(request: Request) -> Dashboard:
    return request.app.state.dashboard


@router.get("/lockers", response_model=LockerList)
def get_lockers(dashboard: Dashboard = Depends(get_dashboard)) -> LockerList:
    """
    Current locker snapshot, as last pushed by the store
    """
    return list_lockers_service(dashboard)


@router.get("/lockers/overview", response_model=LockerOverview)
def get_lockers_overview(dashboard: Dashboard = Depends(get_dashboard)) -> LockerOverview:
    return get_locker_overview_service(dashboard)


@router.post("/lockers", response_model=LockerOut, status_code=201)
def post_lockers(body: LockerCreate, dashboard: Dashboard = Depends(get_dashboard)) -> LockerOut:
    """
    Create a locker

    Returns:
      - 201 with the stored locker
      - 422 if the identifier is blank
      - 503 if the store rejected the write
    """
    try:
        return create_locker_service(body, dashboard)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ConnectivityError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/lockers/{locker_id}", status_code=204)
def delete_lockers_locker_id(
    locker_id: str,
    confirm: bool = False,
    dashboard: Dashboard = Depends(get_dashboard),
) -> Response:
    """
    Remove a locker. Requires ``?confirm=true``; without it nothing is deleted and 409 is returned.
    """
    try:
        delete_locker_service(locker_id, confirm, dashboard)
    except ConfirmationRequired as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConnectivityError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=204)


@router.put("/lockers/{locker_id}/price", response_model=LockerOut)
def put_lockers_locker_id_price(
    locker_id: str,
    body: PriceUpdate,
    dashboard: Dashboard = Depends(get_dashboard),
) -> LockerOut:
    try:
        return update_price_service(locker_id, body, dashboard)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConnectivityError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/lockers/{locker_id}/lock/toggle", response_model=LockToggled)
def post_lockers_locker_id_lock_toggle(
    locker_id: str,
    dashboard: Dashboard = Depends(get_dashboard),
) -> LockToggled:
    """
    Flip the lock bit based on the last-known state
    """
    try:
        return toggle_lock_service(locker_id, dashboard)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConnectivityError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/pricing/apply", response_model=BulkPriceOut)
async def post_pricing_apply(
    body: BulkPriceRequest,
    dashboard: Dashboard = Depends(get_dashboard),
) -> BulkPriceOut:
    """
    Set every locker to the same hourly price (best-effort; see ``failed`` in the response)
    """
    try:
        return await bulk_apply_price_service(body, dashboard)
    except WriteInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/analytics/usage", response_model=UsageStatsOut)
def get_analytics_usage(dashboard: Dashboard = Depends(get_dashboard)) -> UsageStatsOut:
    return get_usage_stats_service(dashboard)
