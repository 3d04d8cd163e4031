"""API Routes for users, families, expenses, reports, history and sync"""
from fastapi import APIRouter, UploadFile, File, Form, Depends, Request, Query, status
from typing import List, Annotated, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
import logging

from models.common import CredentialPayload
from models.expense import Expense, ExpenseCreate
from models.family import Family, FamilyCreate, FamilyJoin
from models.records import HistoryCreate, HistoryEntry, ImportantDate, ImportantDateCreate
from models.sync import SyncRequest, SyncResult
from models.user import DeviceTokenBody, SettingsRequest, User
from services import (
    expenses_service,
    families_service,
    history_service,
    reports_service,
    sync_service,
    users_service,
)
from services.auth_service import Credential, Principal, authenticate
from services.database import get_db
from utils.limiter import limiter, DEFAULT_RATE_LIMIT

router = APIRouter()
logger = logging.getLogger(__name__)

# Type hint for the dependency
DatabaseDep = Annotated[AsyncIOMotorDatabase, Depends(get_db)]

UserIdQuery = Annotated[str, Query(alias="userId", min_length=1)]
DeviceTokenQuery = Annotated[str, Query(alias="deviceToken", min_length=1)]
FamilyIdQuery = Annotated[Optional[str], Query(alias="familyId")]


async def _principal(db: AsyncIOMotorDatabase, user_id: str, device_token: str) -> Principal:
    return await authenticate(db, Credential(user_id, device_token))


async def _principal_from(db: AsyncIOMotorDatabase, payload: CredentialPayload) -> Principal:
    return await _principal(db, payload.user_id, payload.device_token)


# --- Health ---

@router.get("/health", summary="Health Check")
async def health(request: Request):
    return {"status": "ok", "database": getattr(request.state, "db", None) is not None}


# --- Users ---

@router.post("/users", status_code=status.HTTP_201_CREATED, summary="Register User",
             description="Creates a user bound to a device token. The token is never echoed back.")
@limiter.limit(DEFAULT_RATE_LIMIT)
async def register_user(
    request: Request,
    db: DatabaseDep,
    username: Annotated[Optional[str], Form()] = None,
    device_token: Annotated[Optional[str], Form(alias="deviceToken")] = None,
    photo: Annotated[Optional[UploadFile], File()] = None,
):
    logger.info(f"POST /users endpoint called for username: {username}")
    try:
        user = await users_service.create_user(db, username, device_token, photo)
    finally:
        if photo is not None:
            await photo.close()
    return {"message": "User created", "user": user}


@router.get("/users/{username}", response_model=User, summary="Get User By Name")
async def get_user(username: str, db: DatabaseDep, device_token: Annotated[Optional[str], Query(alias="deviceToken")] = None):
    logger.info(f"GET /users/{username} endpoint called.")
    return await users_service.get_user_by_name(db, username, device_token)


@router.patch("/users/{user_id}/last-login", summary="Touch Last Login")
async def touch_last_login(user_id: str, payload: DeviceTokenBody, db: DatabaseDep):
    logger.info(f"PATCH /users/{user_id}/last-login endpoint called.")
    await users_service.touch_last_login(db, Credential(user_id, payload.device_token))
    return {"success": True}


@router.patch("/users/{user_id}/settings", summary="Update Settings")
async def update_settings(user_id: str, payload: SettingsRequest, db: DatabaseDep):
    logger.info(f"PATCH /users/{user_id}/settings endpoint called.")
    settings = await users_service.update_settings(db, Credential(user_id, payload.device_token), payload.settings)
    return {"success": True, "settings": settings}


# --- Families ---

@router.post("/families", status_code=status.HTTP_201_CREATED, summary="Create Family")
async def create_family(payload: FamilyCreate, db: DatabaseDep):
    logger.info(f"POST /families endpoint called by user {payload.user_id}.")
    principal = await _principal_from(db, payload)
    family = await families_service.create_family(db, principal, payload.name)
    return {"message": "Family created", "family": family}


@router.post("/families/join", summary="Join Family", description="Joins a family using its 6-character code.")
async def join_family(payload: FamilyJoin, db: DatabaseDep):
    logger.info(f"POST /families/join endpoint called by user {payload.user_id}.")
    principal = await _principal_from(db, payload)
    family = await families_service.join_family(db, principal, payload.code)
    return {"message": "Joined family", "family": family}


@router.get("/families", response_model=List[Family], summary="List My Families")
async def list_families(db: DatabaseDep, user_id: UserIdQuery, device_token: DeviceTokenQuery):
    logger.info(f"GET /families endpoint called by user {user_id}.")
    principal = await _principal(db, user_id, device_token)
    return await families_service.list_families(db, principal)


# --- Expenses ---

@router.post("/expenses", status_code=status.HTTP_201_CREATED, summary="Create Expense")
async def create_expense(payload: ExpenseCreate, db: DatabaseDep):
    logger.info(f"POST /expenses endpoint called by user {payload.user_id} (family={payload.family_id}).")
    principal = await _principal_from(db, payload)
    expense = await expenses_service.create_expense(db, principal, payload, payload.family_id)
    return {"message": "Expense created", "expense": expense}


@router.get("/expenses/{user_id}", response_model=List[Expense], summary="List Expenses",
            description="Personal expenses, or a family's shared expenses when familyId is given; sorted by due date ascending.")
async def list_expenses(user_id: str, db: DatabaseDep, device_token: DeviceTokenQuery, family_id: FamilyIdQuery = None):
    logger.info(f"GET /expenses/{user_id} endpoint called (family={family_id}).")
    principal = await _principal(db, user_id, device_token)
    return await expenses_service.list_expenses(db, principal, family_id)


@router.delete("/expenses/{expense_id}", summary="Delete Expense")
async def delete_expense(expense_id: str, payload: CredentialPayload, db: DatabaseDep):
    logger.info(f"DELETE /expenses/{expense_id} endpoint called by user {payload.user_id}.")
    principal = await _principal_from(db, payload)
    await expenses_service.delete_expense(db, principal, expense_id)
    return {"success": True}


# --- Reports ---

@router.get("/reports/weekly/{user_id}", summary="Weekly Report")
async def weekly_report(user_id: str, db: DatabaseDep, device_token: DeviceTokenQuery, family_id: FamilyIdQuery = None):
    logger.info(f"GET /reports/weekly/{user_id} endpoint called.")
    principal = await _principal(db, user_id, device_token)
    return await reports_service.weekly_report(db, principal, family_id)


@router.get("/reports/monthly/{user_id}", summary="Monthly Report")
async def monthly_report(user_id: str, db: DatabaseDep, device_token: DeviceTokenQuery, family_id: FamilyIdQuery = None):
    logger.info(f"GET /reports/monthly/{user_id} endpoint called.")
    principal = await _principal(db, user_id, device_token)
    return await reports_service.monthly_report(db, principal, family_id)


# --- Important dates ---

@router.post("/dates", status_code=status.HTTP_201_CREATED, summary="Add Important Date")
async def add_important_date(payload: ImportantDateCreate, db: DatabaseDep):
    logger.info(f"POST /dates endpoint called by user {payload.user_id}.")
    principal = await _principal_from(db, payload)
    entry = await history_service.add_important_date(db, principal, payload)
    return {"message": "Date added", "date": entry}


@router.get("/dates", response_model=List[ImportantDate], summary="List Important Dates")
async def list_important_dates(db: DatabaseDep, user_id: UserIdQuery, device_token: DeviceTokenQuery):
    logger.info(f"GET /dates endpoint called by user {user_id}.")
    principal = await _principal(db, user_id, device_token)
    return await history_service.list_important_dates(db, principal)


@router.delete("/dates/{date_id}", summary="Delete Important Date")
async def delete_important_date(date_id: str, payload: CredentialPayload, db: DatabaseDep):
    logger.info(f"DELETE /dates/{date_id} endpoint called by user {payload.user_id}.")
    principal = await _principal_from(db, payload)
    await history_service.delete_important_date(db, principal, date_id)
    return {"success": True}


# --- History ---

@router.post("/history", status_code=status.HTTP_201_CREATED, summary="Add History Entry")
async def add_history(payload: HistoryCreate, db: DatabaseDep):
    logger.info(f"POST /history endpoint called by user {payload.user_id} (scope={payload.scope}).")
    principal = await _principal_from(db, payload)
    entry = await history_service.add_history(db, principal, payload)
    return {"message": "History entry added", "entry": entry}


@router.get("/history", response_model=List[HistoryEntry], summary="List History")
async def list_history(db: DatabaseDep, user_id: UserIdQuery, device_token: DeviceTokenQuery, family_id: FamilyIdQuery = None):
    logger.info(f"GET /history endpoint called by user {user_id} (family={family_id}).")
    principal = await _principal(db, user_id, device_token)
    return await history_service.list_history(db, principal, family_id)


# --- Offline sync ---

@router.post("/sync-data", response_model=SyncResult, summary="Sync Offline Data",
             description="Merges client-buffered expenses, dates and history, skipping ids that already exist.")
@limiter.limit(DEFAULT_RATE_LIMIT)
async def sync_offline_data(request: Request, payload: SyncRequest, db: DatabaseDep):
    logger.info(f"POST /sync-data endpoint called by user {payload.user_id}.")
    principal = await _principal_from(db, payload)
    return await sync_service.sync_data(db, principal, payload)
