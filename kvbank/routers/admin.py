"""
Admin router — maintenance and administrator profile endpoints.

All endpoints require the ADMIN role.

Endpoints:
  POST /admin/init      — Seed demo data into an empty store
  POST /admin/backup    — Write a JSON snapshot of all data
  GET  /admin/activity  — Read one day's activity log, newest first
  GET  /admin/profile   — Get the administrator profile
  PUT  /admin/profile   — Update the administrator profile or password
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from kvbank.dependencies import Principal, get_repository, require_admin
from kvbank.schemas.admin import (
    ActivityEntryResponse,
    AdminProfileResponse,
    AdminProfileUpdateRequest,
    BackupResponse,
    InitResponse,
)
from kvbank.services import auth_service, maintenance_service
from kvbank.services.account_repository import AccountRepository

router = APIRouter()


@router.post(
    "/init",
    response_model=InitResponse,
    summary="Initialize demo data",
)
async def initialize_data(
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    """Does nothing (0 accounts created) if any account already exists."""
    created = await maintenance_service.initialize_default_data(repository)
    return InitResponse(accounts_created=created)


@router.post(
    "/backup",
    response_model=BackupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a backup snapshot",
)
async def create_backup(
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    key = await maintenance_service.create_backup(repository)
    return BackupResponse(key=key)


@router.get(
    "/activity",
    response_model=list[ActivityEntryResponse],
    summary="Read the activity log",
)
async def get_activity(
    day: date | None = Query(None, description="UTC day (YYYY-MM-DD); defaults to today"),
    limit: int = Query(100, ge=1, le=100),
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await repository.activity_log.recent(day=day, limit=limit)


@router.get(
    "/profile",
    response_model=AdminProfileResponse,
    summary="Get the administrator profile",
)
async def get_profile(
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await auth_service.get_admin_info(repository)


@router.put(
    "/profile",
    response_model=AdminProfileResponse,
    summary="Update the administrator profile",
)
async def update_profile(
    request: AdminProfileUpdateRequest,
    _: Principal = Depends(require_admin),
    repository: AccountRepository = Depends(get_repository),
):
    return await auth_service.update_admin_info(
        repository, request.model_dump(exclude_unset=True)
    )
