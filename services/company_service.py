import logging
from typing import List, Optional

from fastapi import Depends

from models.company import CompanySave
from models.flight import format_tail_number
from models.result import DbResult
from models.user import User
from services.data_access import DataAccess, get_data_access

logger = logging.getLogger(__name__)


def _unique_tails(tails: List[str]) -> List[str]:
    seen = []
    for tail in tails:
        formatted = format_tail_number(tail)
        if formatted and formatted not in seen:
            seen.append(formatted)
    return seen


class CompanyService:
    """Saves a company and keeps its registered tail list in sync"""

    def __init__(self, data: DataAccess):
        self.data = data

    async def save_company(self, company: CompanySave, user: User, company_id: Optional[str] = None) -> DbResult:
        fields = company.dict(exclude={"tails"})

        if company_id:
            result = await self.data.companies.update(company_id, fields)
        else:
            fields["created_by"] = user.id
            result = await self.data.companies.create(fields)
        if not result.ok:
            return result

        saved = result.data
        tails_result = await self.sync_tails(saved.id, company.tails)
        if not tails_result.ok:
            return tails_result

        logger.info(f"Company {saved.name} saved by {user.email} with {len(tails_result.data)} tail(s)")
        return result

    async def sync_tails(self, company_id: str, tails: List[str]) -> DbResult:
        """Remove tails no longer listed, add new ones; data is the resulting tail list"""
        desired = _unique_tails(tails)

        existing = await self.data.company_tails.get_by_company(company_id)
        if not existing.ok:
            return existing
        current = [t.tail_number for t in existing.data]

        for tail in current:
            if tail not in desired:
                removed = await self.data.company_tails.delete_by_tail(company_id, tail)
                if not removed.ok:
                    return removed

        for tail in desired:
            if tail not in current:
                added = await self.data.company_tails.create(company_id, tail)
                if not added.ok:
                    return added

        return await self.data.company_tails.get_by_company(company_id)


async def get_company_service(data: DataAccess = Depends(get_data_access)) -> CompanyService:
    return CompanyService(data)
