"""Task endpoints addressed by task id."""

from fastapi import APIRouter, Response, status

from nexus_campus.schemas.project import TaskResponse, TaskUpdate
from nexus_campus.services import project_service

from ..dependencies import CallerDep, SessionDep

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(task_id: str, data: TaskUpdate, caller: CallerDep, db: SessionDep) -> TaskResponse:
    """Project owners edit any field; the assigned student may only change status."""
    return TaskResponse.model_validate(project_service.update_task(db, caller, task_id, data))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, caller: CallerDep, db: SessionDep) -> Response:
    project_service.delete_task(db, caller, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
