"""Project endpoints for faculty projects and their collaboration space."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from nexus_campus.models import Project
from nexus_campus.schemas.project import (
    ApplicationCreate,
    ApplicationResponse,
    AttachmentCreate,
    AttachmentResponse,
    CommentCreate,
    CommentResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectModerate,
    ProjectResponse,
    ProjectUpdate,
    TaskCreate,
    TaskResponse,
)
from nexus_campus.services import project_service

from ..dependencies import CallerDep, SessionDep, SessionFactoryDep, raise_for_outcome

router = APIRouter(prefix="/projects", tags=["projects"])


def _to_response(project: Project, application_status: str | None = None) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    response.has_applied = application_status is not None
    response.my_application_status = application_status
    return response


@router.get("/", response_model=ProjectListResponse)
async def list_projects(
    caller: CallerDep,
    db: SessionDep,
    q: str | None = None,
    project_type: str | None = None,
    progress_status: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ProjectListResponse:
    """List projects; students only see approved projects open to their department."""
    rows, total = project_service.list_projects(
        db,
        caller,
        q=q,
        project_type=project_type,
        progress_status=progress_status,
        page=page,
        limit=limit,
    )
    return ProjectListResponse(
        projects=[_to_response(project, app_status) for project, app_status in rows],
        page=page,
        total=total,
    )


@router.get("/mine", response_model=list[ProjectResponse])
async def my_projects(caller: CallerDep, db: SessionDep) -> list[ProjectResponse]:
    return [_to_response(project) for project in project_service.my_projects(db, caller)]


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(data: ProjectCreate, caller: CallerDep, db: SessionDep) -> ProjectResponse:
    return _to_response(project_service.create_project(db, caller, data))


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, caller: CallerDep, db: SessionDep) -> ProjectResponse:
    project = project_service.load_project(db, caller, project_id)
    return _to_response(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str, data: ProjectUpdate, caller: CallerDep, db: SessionDep
) -> ProjectResponse:
    return _to_response(project_service.update_project(db, caller, project_id, data))


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_project(project_id: str, caller: CallerDep, db: SessionDep) -> Response:
    project_service.archive_project(db, caller, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/moderate", response_model=ProjectResponse)
async def moderate_project(
    project_id: str, data: ProjectModerate, caller: CallerDep, db: SessionDep
) -> ProjectResponse:
    return _to_response(project_service.moderate_project(db, caller, project_id, data.action))


@router.post(
    "/{project_id}/apply",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
def apply_to_project(
    project_id: str,
    data: ApplicationCreate,
    caller: CallerDep,
    db: SessionDep,
    session_factory: SessionFactoryDep,
) -> ApplicationResponse:
    """Submit the caller's application; 409 if they already applied."""
    result = project_service.apply_to_project(db, session_factory, caller, project_id, data)
    raise_for_outcome(result, already="Already applied")
    return ApplicationResponse.model_validate(result.record)


@router.get("/{project_id}/applications", response_model=list[ApplicationResponse])
async def list_applications(
    project_id: str,
    caller: CallerDep,
    db: SessionDep,
    application_status: Annotated[str | None, Query(alias="status")] = None,
) -> list[ApplicationResponse]:
    applications = project_service.list_applications(db, caller, project_id, application_status)
    return [ApplicationResponse.model_validate(application) for application in applications]


@router.get("/{project_id}/tasks", response_model=list[TaskResponse])
async def list_tasks(project_id: str, caller: CallerDep, db: SessionDep) -> list[TaskResponse]:
    return [TaskResponse.model_validate(task) for task in project_service.list_tasks(db, caller, project_id)]


@router.post(
    "/{project_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    project_id: str, data: TaskCreate, caller: CallerDep, db: SessionDep
) -> TaskResponse:
    return TaskResponse.model_validate(project_service.create_task(db, caller, project_id, data))


@router.get("/{project_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    project_id: str,
    caller: CallerDep,
    db: SessionDep,
    task_id: str | None = None,
) -> list[CommentResponse]:
    comments = project_service.list_comments(db, caller, project_id, task_id)
    return [CommentResponse.model_validate(comment) for comment in comments]


@router.post(
    "/{project_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    project_id: str, data: CommentCreate, caller: CallerDep, db: SessionDep
) -> CommentResponse:
    return CommentResponse.model_validate(project_service.add_comment(db, caller, project_id, data))


@router.get("/{project_id}/attachments", response_model=list[AttachmentResponse])
async def list_attachments(
    project_id: str, caller: CallerDep, db: SessionDep
) -> list[AttachmentResponse]:
    attachments = project_service.list_attachments(db, caller, project_id)
    return [AttachmentResponse.model_validate(attachment) for attachment in attachments]


@router.post(
    "/{project_id}/attachments",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_attachment(
    project_id: str, data: AttachmentCreate, caller: CallerDep, db: SessionDep
) -> AttachmentResponse:
    return AttachmentResponse.model_validate(
        project_service.add_attachment(db, caller, project_id, data)
    )
