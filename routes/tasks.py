from fastapi import APIRouter, Depends, status
from typing import List
import logging

from models.task import FlightTask, FlightTaskCreate, FlightTaskUpdate
from models.user import User
from routes.common import unwrap
from services.auth_deps import get_current_user
from services.data_access import DataAccess, get_data_access

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["tasks"])

@router.get("/flights/{flight_id}/tasks", response_model=List[FlightTask])
async def get_flight_tasks(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    """Checklist of a flight in creation order"""
    return unwrap(await data.tasks.get_by_flight(flight_id))

@router.post("/flights/{flight_id}/tasks", response_model=FlightTask, status_code=status.HTTP_201_CREATED)
async def create_flight_task(
    flight_id: str,
    task: FlightTaskCreate,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    # The flight must exist
    unwrap(await data.flights.get_by_id(flight_id))

    task_dict = task.dict()
    task_dict["flight_id"] = flight_id
    task_dict["created_by"] = current_user.id

    created = unwrap(await data.tasks.create(task_dict))
    logger.info(f"Task {created.id} added to flight {flight_id} by {current_user.email}")
    return created

@router.patch("/tasks/{task_id}", response_model=FlightTask)
async def update_flight_task(
    task_id: str,
    task_update: FlightTaskUpdate,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    """Toggle completion or edit a task"""
    update_data = task_update.dict(exclude_unset=True)
    if not update_data:
        return unwrap(await data.tasks.get_by_id(task_id))
    return unwrap(await data.tasks.update(task_id, update_data))

@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flight_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    unwrap(await data.tasks.delete(task_id))
    logger.info(f"Task {task_id} deleted by {current_user.email}")
    return None
