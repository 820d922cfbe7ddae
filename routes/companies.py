from fastapi import APIRouter, Depends, status
from typing import List
import logging

from models.company import Company, CompanySave, CompanyTail, CompanyTailCreate
from models.user import User
from routes.common import unwrap
from services.auth_deps import get_current_user
from services.company_service import CompanyService, get_company_service
from services.data_access import DataAccess, get_data_access

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/companies", tags=["companies"])

@router.get("", response_model=List[Company])
async def list_companies(
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    """All companies sorted by name"""
    return unwrap(await data.companies.get_all())

@router.post("", response_model=Company, status_code=status.HTTP_201_CREATED)
async def create_company(
    company: CompanySave,
    current_user: User = Depends(get_current_user),
    service: CompanyService = Depends(get_company_service)
):
    """Create a company with its registered tails"""
    return unwrap(await service.save_company(company, current_user))

@router.get("/{company_id}", response_model=Company)
async def get_company(
    company_id: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    return unwrap(await data.companies.get_by_id(company_id))

@router.put("/{company_id}", response_model=Company)
async def update_company(
    company_id: str,
    company: CompanySave,
    current_user: User = Depends(get_current_user),
    service: CompanyService = Depends(get_company_service)
):
    """Update a company; its tail list is replaced by the submitted one"""
    return unwrap(await service.save_company(company, current_user, company_id=company_id))

@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    unwrap(await data.companies.delete(company_id))
    logger.info(f"Company {company_id} deleted by {current_user.email}")
    return None

# ==================== TAIL NUMBERS ====================

@router.get("/{company_id}/tails", response_model=List[CompanyTail])
async def list_company_tails(
    company_id: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    return unwrap(await data.company_tails.get_by_company(company_id))

@router.post("/{company_id}/tails", response_model=CompanyTail, status_code=status.HTTP_201_CREATED)
async def add_company_tail(
    company_id: str,
    tail: CompanyTailCreate,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    """Register a tail number for a company"""
    unwrap(await data.companies.get_by_id(company_id))
    return unwrap(await data.company_tails.create(company_id, tail.tail_number))

@router.delete("/{company_id}/tails/{tail_number}")
async def remove_company_tail(
    company_id: str,
    tail_number: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    removed = unwrap(await data.company_tails.delete_by_tail(company_id, tail_number))
    return {"removed": removed}
