"""Business logic for projects, applications and project collaboration."""
from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from nexus_campus.core.errors import BadRequestError, ForbiddenError, InvalidStateError, NotFoundError
from nexus_campus.core.security import CallerContext
from nexus_campus.core.settings import settings
from nexus_campus.db.time import as_utc, utcnow
from nexus_campus.models import (
    Project,
    ProjectApplication,
    ProjectAttachment,
    ProjectComment,
    ProjectTask,
)
from nexus_campus.models.event import MODERATION_APPROVED, MODERATION_PENDING, MODERATION_REJECTED
from nexus_campus.models.project import (
    APPLICATION_ACCEPTED,
    APPLICATION_PENDING,
    PROGRESS_COMPLETED,
)
from nexus_campus.schemas.project import (
    ApplicationCreate,
    AttachmentCreate,
    CommentCreate,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
)
from nexus_campus.services.authorization import Action, require
from nexus_campus.services.claims import (
    ClaimRequest,
    ClaimResult,
    StatusTransition,
    claim_slot,
    transition_claim,
)

logger = logging.getLogger(__name__)


def load_project(db: Session, caller: CallerContext, project_id: str) -> Project:
    """Return a live (not archived) project in the caller's college."""
    project = db.scalar(
        select(Project).where(
            Project.id == project_id,
            Project.college_id == caller.college_id,
            Project.archived_at.is_(None),
        )
    )
    if project is None:
        raise NotFoundError("Project not found")
    return project


def load_task(db: Session, caller: CallerContext, task_id: str) -> ProjectTask:
    task = db.get(ProjectTask, task_id)
    if (
        task is None
        or task.project.college_id != caller.college_id
        or task.project.archived_at is not None
    ):
        raise NotFoundError("Task not found")
    return task


def is_accepted_member(db: Session, project_id: str, user_id: str) -> bool:
    return db.scalar(
        select(ProjectApplication.id).where(
            ProjectApplication.project_id == project_id,
            ProjectApplication.student_id == user_id,
            ProjectApplication.status == APPLICATION_ACCEPTED,
        )
    ) is not None


def _require_collaborator(db: Session, caller: CallerContext, project: Project) -> None:
    member = project.author_id != caller.subject and is_accepted_member(db, project.id, caller.subject)
    require(caller, "project", Action.COLLABORATE, project, is_member=member)


def list_projects(
    db: Session,
    caller: CallerContext,
    *,
    q: str | None = None,
    project_type: str | None = None,
    progress_status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[tuple[Project, str | None]], int]:
    """Return a page of projects with the caller's application status, and the total."""
    stmt = select(Project).where(Project.college_id == caller.college_id, Project.archived_at.is_(None))
    if project_type:
        stmt = stmt.where(Project.project_type == project_type)
    if progress_status:
        stmt = stmt.where(Project.progress_status == progress_status)
    if q:
        pattern = f"%{q.lower()}%"
        stmt = stmt.where(
            or_(func.lower(Project.title).like(pattern), func.lower(Project.description).like(pattern))
        )
    if caller.is_student:
        stmt = stmt.where(Project.moderation_status == MODERATION_APPROVED)

    projects = list(db.scalars(stmt.order_by(Project.created_at.desc())))
    if caller.is_student:
        projects = [project for project in projects if project.is_visible_to(caller.department)]
    total = len(projects)
    start = (page - 1) * limit
    projects = projects[start:start + limit]

    statuses: dict[str, str] = {}
    if caller.is_student and projects:
        rows = db.execute(
            select(ProjectApplication.project_id, ProjectApplication.status).where(
                ProjectApplication.student_id == caller.subject,
                ProjectApplication.project_id.in_([project.id for project in projects]),
            )
        )
        statuses = {project_id: status for project_id, status in rows}
    return [(project, statuses.get(project.id)) for project in projects], total


def my_projects(db: Session, caller: CallerContext) -> list[Project]:
    return list(
        db.scalars(
            select(Project)
            .where(
                Project.author_id == caller.subject,
                Project.college_id == caller.college_id,
                Project.archived_at.is_(None),
            )
            .order_by(Project.created_at.desc())
        )
    )


def create_project(db: Session, caller: CallerContext, data: ProjectCreate) -> Project:
    require(caller, "project", Action.CREATE)
    if not data.visible_to_all_depts and not data.departments:
        raise BadRequestError("Specify at least one department when visible_to_all_depts is false")

    project = Project(
        college_id=caller.college_id,
        author_id=caller.subject,
        author_name=caller.name or "",
        author_avatar=caller.avatar_url,
        title=data.title,
        description=data.description,
        project_duration=data.project_duration,
        skills=list(data.skills),
        departments=list(data.departments),
        visible_to_all_depts=data.visible_to_all_depts,
        project_type=data.project_type,
        max_students=data.max_students,
        deadline=as_utc(data.deadline),
        tags=list(data.tags),
        requirements=list(data.requirements),
        outcomes=list(data.outcomes),
        moderation_status=MODERATION_APPROVED if settings.project_auto_approve else MODERATION_PENDING,
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s created by %s", project.id, caller.subject)
    return project


def update_project(db: Session, caller: CallerContext, project_id: str, data: ProjectUpdate) -> Project:
    project = load_project(db, caller, project_id)
    require(caller, "project", Action.UPDATE, project)
    changes = data.model_dump(exclude_unset=True)
    if "deadline" in changes:
        changes["deadline"] = as_utc(changes["deadline"])
    for key, value in changes.items():
        setattr(project, key, value)
    db.commit()
    db.refresh(project)
    return project


def archive_project(db: Session, caller: CallerContext, project_id: str) -> None:
    project = load_project(db, caller, project_id)
    require(caller, "project", Action.DELETE, project)
    project.archived_at = utcnow()
    db.commit()
    logger.info("Project %s archived by %s", project_id, caller.subject)


def moderate_project(db: Session, caller: CallerContext, project_id: str, action: str) -> Project:
    """Approve or reject a project that is awaiting review."""
    require(caller, "project", Action.MODERATE)
    project = load_project(db, caller, project_id)
    if project.moderation_status != MODERATION_PENDING:
        raise InvalidStateError("Only projects pending review can be moderated")
    project.moderation_status = MODERATION_APPROVED if action == "APPROVE" else MODERATION_REJECTED
    db.commit()
    db.refresh(project)
    return project


def apply_to_project(
    db: Session,
    session_factory: sessionmaker[Session],
    caller: CallerContext,
    project_id: str,
    data: ApplicationCreate,
) -> ClaimResult:
    """Claim an application slot: one per student, no numeric cap."""
    require(caller, "project", Action.APPLY)
    project = load_project(db, caller, project_id)
    if project.moderation_status != MODERATION_APPROVED:
        raise InvalidStateError("Project not open for applications", reason="not-open")
    if project.progress_status == PROGRESS_COMPLETED:
        raise InvalidStateError("Project already completed", reason="completed")
    if not project.is_visible_to(caller.department):
        raise ForbiddenError("Not visible to your department", reason="not-visible")
    deadline = as_utc(project.deadline)
    if deadline is not None and utcnow() > deadline:
        raise InvalidStateError("Application deadline has passed", reason="deadline-passed")

    request = ClaimRequest(
        model=ProjectApplication,
        resource_field="project_id",
        requester_field="student_id",
        values={
            "project_id": project.id,
            "student_id": caller.subject,
            "student_name": caller.name or "",
            "student_department": caller.department,
            "status": APPLICATION_PENDING,
            "message": data.message,
        },
    )
    result = claim_slot(session_factory, request)
    logger.info("Application of %s to project %s: %s", caller.subject, project.id, result.outcome.value)
    return result


def list_applications(
    db: Session, caller: CallerContext, project_id: str, status: str | None = None
) -> list[ProjectApplication]:
    project = db.scalar(
        select(Project).where(Project.id == project_id, Project.college_id == caller.college_id)
    )
    if project is None:
        raise NotFoundError("Project not found")
    require(caller, "project", Action.REVIEW, project)
    stmt = select(ProjectApplication).where(ProjectApplication.project_id == project_id)
    if status:
        stmt = stmt.where(ProjectApplication.status == status)
    return list(db.scalars(stmt.order_by(ProjectApplication.applied_at.desc())))


def my_applications(db: Session, caller: CallerContext, status: str | None = None) -> list[ProjectApplication]:
    stmt = (
        select(ProjectApplication)
        .join(Project, Project.id == ProjectApplication.project_id)
        .where(
            ProjectApplication.student_id == caller.subject,
            Project.college_id == caller.college_id,
            Project.archived_at.is_(None),
        )
    )
    if status:
        stmt = stmt.where(ProjectApplication.status == status)
    return list(db.scalars(stmt.order_by(ProjectApplication.applied_at.desc())))


def decide_application(
    db: Session,
    session_factory: sessionmaker[Session],
    caller: CallerContext,
    application_id: str,
    status: str,
) -> ClaimResult:
    """Accept or reject a pending application; acceptance is capped by ``max_students``."""
    application = db.get(ProjectApplication, application_id)
    project = application.project if application is not None else None
    if (
        project is None
        or project.archived_at is not None
        or project.college_id != caller.college_id
        or project.author_id != caller.subject
    ):
        raise NotFoundError("Application not found")
    require(caller, "project", Action.REVIEW, project)
    if application.status != APPLICATION_PENDING:
        raise InvalidStateError("Only pending applications can be updated")

    transition = StatusTransition(
        model=ProjectApplication,
        record_id=application.id,
        resource_field="project_id",
        from_status=APPLICATION_PENDING,
        to_status=status,
        bounded_status=APPLICATION_ACCEPTED,
        capacity=project.max_students,
    )
    result = transition_claim(session_factory, transition)
    logger.info(
        "Application %s -> %s by %s: %s", application.id, status, caller.subject, result.outcome.value
    )
    return result


def list_tasks(db: Session, caller: CallerContext, project_id: str) -> list[ProjectTask]:
    project = load_project(db, caller, project_id)
    _require_collaborator(db, caller, project)
    return list(
        db.scalars(
            select(ProjectTask).where(ProjectTask.project_id == project.id).order_by(ProjectTask.created_at.asc())
        )
    )


def _check_assignee(db: Session, project_id: str, assignee: str | None) -> None:
    if assignee and not is_accepted_member(db, project_id, assignee):
        raise BadRequestError("assigned_to_id must be an accepted member")


def create_task(db: Session, caller: CallerContext, project_id: str, data: TaskCreate) -> ProjectTask:
    project = load_project(db, caller, project_id)
    require(caller, "project", Action.UPDATE, project)
    _check_assignee(db, project.id, data.assigned_to_id)
    task = ProjectTask(project_id=project.id, title=data.title, assigned_to_id=data.assigned_to_id)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(db: Session, caller: CallerContext, task_id: str, data: TaskUpdate) -> ProjectTask:
    """Owners may edit any field; the assigned student may only move the status."""
    task = load_task(db, caller, task_id)
    changes = data.model_dump(exclude_unset=True)
    only_status = set(changes) == {"status"}
    decision = require(caller, "task", Action.UPDATE_STATUS if only_status else Action.UPDATE, task)
    if decision.reason == "owner" and "assigned_to_id" in changes:
        _check_assignee(db, task.project_id, changes["assigned_to_id"])
    for key, value in changes.items():
        setattr(task, key, value)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, caller: CallerContext, task_id: str) -> None:
    task = load_task(db, caller, task_id)
    require(caller, "task", Action.DELETE, task)
    db.delete(task)
    db.commit()


def list_comments(
    db: Session, caller: CallerContext, project_id: str, task_id: str | None = None
) -> list[ProjectComment]:
    project = load_project(db, caller, project_id)
    _require_collaborator(db, caller, project)
    stmt = select(ProjectComment).where(ProjectComment.project_id == project.id)
    if task_id:
        stmt = stmt.where(ProjectComment.task_id == task_id)
    return list(db.scalars(stmt.order_by(ProjectComment.created_at.asc())))


def add_comment(db: Session, caller: CallerContext, project_id: str, data: CommentCreate) -> ProjectComment:
    project = load_project(db, caller, project_id)
    _require_collaborator(db, caller, project)
    if data.task_id:
        task = db.get(ProjectTask, data.task_id)
        if task is None or task.project_id != project.id:
            raise BadRequestError("task_id does not belong to this project")
    comment = ProjectComment(
        project_id=project.id,
        task_id=data.task_id,
        author_id=caller.subject,
        author_name=caller.name or "",
        body=data.body,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def list_attachments(db: Session, caller: CallerContext, project_id: str) -> list[ProjectAttachment]:
    project = load_project(db, caller, project_id)
    _require_collaborator(db, caller, project)
    return list(
        db.scalars(
            select(ProjectAttachment)
            .where(ProjectAttachment.project_id == project.id)
            .order_by(ProjectAttachment.created_at.desc())
        )
    )


def add_attachment(
    db: Session, caller: CallerContext, project_id: str, data: AttachmentCreate
) -> ProjectAttachment:
    project = load_project(db, caller, project_id)
    _require_collaborator(db, caller, project)
    attachment = ProjectAttachment(
        project_id=project.id,
        uploader_id=caller.subject,
        file_name=data.file_name,
        file_url=data.file_url,
        file_type=data.file_type,
    )
    db.add(attachment)
    db.commit()
    db.refresh(attachment)
    return attachment
