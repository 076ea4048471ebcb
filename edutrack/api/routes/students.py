"""Student endpoints — enrollment records inside one institution.

Staff (secretaries and teachers) may list and read every record of their
institution. A student may only read its own record. Writes are reserved to
secretaries and count against the license's student cap.
"""

from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends, Response, status

from edutrack.api.context import RequestIdentity
from edutrack.api.db.accounts import AccountRepository
from edutrack.api.db.careers import CareerRepository
from edutrack.api.db.students import StudentRepository
from edutrack.api.deps import (
    get_account_repo,
    get_career_repo,
    get_student_repo,
    require_auth,
    require_secretary,
    require_staff,
    require_student,
)
from edutrack.api.models.schemas import StudentCreate, StudentOut, StudentUpdate
from edutrack.api.scoping import ensure_subject, load_scoped
from edutrack.core.constants import MSG_NOT_FOUND
from edutrack.core.exceptions import BadRequestError, NotFoundError, UnprocessableError
from edutrack.core.types import Student
from edutrack.saas.account import Role

router = APIRouter(prefix="/students", tags=["students"])

_UNKNOWN_ACCOUNT = "The account does not exist in this institution or is not a student."
_UNKNOWN_CAREER = "The career does not exist in this institution."


async def _check_career(careers: CareerRepository, career_id: int | None, tenant_id: str) -> None:
    # Missing and foreign careers get the same answer so other tenants' ids stay hidden.
    if career_id is None:
        return
    career = await careers.find_by_id(career_id)
    if career is None or career.tenant_id != tenant_id:
        raise UnprocessableError(_UNKNOWN_CAREER, context={"career_id": career_id})


@router.get("", response_model=list[StudentOut])
async def list_students(
    career_id: int | None = None,
    semester: int | None = None,
    student_id: str | None = None,
    identity: RequestIdentity = Depends(require_staff),
    students: StudentRepository = Depends(get_student_repo),
) -> list[StudentOut]:
    found = await students.list_for_tenant(
        identity.tenant_id, career_id=career_id, semester=semester, student_id=student_id
    )
    return [StudentOut.from_student(s) for s in found]


@router.get("/me", response_model=StudentOut)
async def get_my_student_record(
    identity: RequestIdentity = Depends(require_student),
    students: StudentRepository = Depends(get_student_repo),
) -> StudentOut:
    """The student record attached to the calling student account."""
    student = await students.find_by_account_id(identity.account_id)
    if student is None or student.tenant_id != identity.tenant_id:
        raise NotFoundError(MSG_NOT_FOUND, context={"account_id": identity.account_id})
    return StudentOut.from_student(student)


@router.get("/{student_pk}", response_model=StudentOut)
async def get_student(
    student_pk: int,
    identity: RequestIdentity = Depends(require_auth),
    students: StudentRepository = Depends(get_student_repo),
) -> StudentOut:
    student = load_scoped(await students.find_by_id(student_pk), identity, "student", student_pk)
    ensure_subject(identity, student.account_id, "student")
    return StudentOut.from_student(student)


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
async def create_student(
    body: StudentCreate,
    identity: RequestIdentity = Depends(require_secretary),
    students: StudentRepository = Depends(get_student_repo),
    accounts: AccountRepository = Depends(get_account_repo),
    careers: CareerRepository = Depends(get_career_repo),
) -> StudentOut:
    """Enroll a student account, optionally in a career."""
    if not body.student_id or not body.account_id:
        raise BadRequestError("The registration number and account are required.")
    if body.semester <= 0:
        raise BadRequestError("The semester must be a positive number.")

    account = await accounts.find_by_id(body.account_id)
    if account is None or account.tenant_id != identity.tenant_id or account.role != Role.STUDENT:
        raise UnprocessableError(_UNKNOWN_ACCOUNT, context={"account_id": body.account_id})
    await _check_career(careers, body.career_id, identity.tenant_id)

    student = Student(
        tenant_id=identity.tenant_id,
        student_id=body.student_id,
        account_id=account.id,
        career_id=body.career_id,
        semester=body.semester,
    )
    return StudentOut.from_student(await students.add(student, enforce_limit=True))


@router.put("/{student_pk}", response_model=StudentOut)
async def update_student(
    student_pk: int,
    body: StudentUpdate,
    identity: RequestIdentity = Depends(require_secretary),
    students: StudentRepository = Depends(get_student_repo),
    careers: CareerRepository = Depends(get_career_repo),
) -> StudentOut:
    existing = load_scoped(await students.find_by_id(student_pk), identity, "student", student_pk)

    changes = body.model_dump(exclude_none=True)
    if changes.get("student_id") == "":
        raise BadRequestError("The registration number cannot be empty.")
    if "semester" in changes and changes["semester"] <= 0:
        raise BadRequestError("The semester must be a positive number.")
    await _check_career(careers, changes.get("career_id"), identity.tenant_id)

    updated = await students.update(replace(existing, **changes))
    return StudentOut.from_student(updated)


@router.delete("/{student_pk}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_pk: int,
    identity: RequestIdentity = Depends(require_secretary),
    students: StudentRepository = Depends(get_student_repo),
) -> Response:
    load_scoped(await students.find_by_id(student_pk), identity, "student", student_pk)
    await students.delete(student_pk)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
