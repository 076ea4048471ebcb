"""Career endpoints. Any role may read, only secretaries write."""

from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends, Response, status

from edutrack.api.context import RequestIdentity
from edutrack.api.db.careers import CareerRepository
from edutrack.api.deps import get_career_repo, require_auth, require_secretary
from edutrack.api.models.schemas import CareerCreate, CareerOut, CareerUpdate
from edutrack.api.scoping import load_scoped
from edutrack.core.exceptions import BadRequestError
from edutrack.core.types import Career

router = APIRouter(prefix="/careers", tags=["careers"])


@router.get("", response_model=list[CareerOut])
async def list_careers(
    name: str | None = None,
    active: bool | None = None,
    identity: RequestIdentity = Depends(require_auth),
    careers: CareerRepository = Depends(get_career_repo),
) -> list[CareerOut]:
    found = await careers.list_for_tenant(identity.tenant_id, name=name, active=active)
    return [CareerOut.from_career(c) for c in found]


@router.get("/{career_id}", response_model=CareerOut)
async def get_career(
    career_id: int,
    identity: RequestIdentity = Depends(require_auth),
    careers: CareerRepository = Depends(get_career_repo),
) -> CareerOut:
    career = load_scoped(await careers.find_by_id(career_id), identity, "career", career_id)
    return CareerOut.from_career(career)


@router.post("", response_model=CareerOut, status_code=status.HTTP_201_CREATED)
async def create_career(
    body: CareerCreate,
    identity: RequestIdentity = Depends(require_secretary),
    careers: CareerRepository = Depends(get_career_repo),
) -> CareerOut:
    if not body.name or not body.code:
        raise BadRequestError("Name and code are required.")

    career = Career(
        tenant_id=identity.tenant_id,
        name=body.name,
        code=body.code,
        description=body.description,
        duration=body.duration,
        active=body.active,
    )
    return CareerOut.from_career(await careers.add(career))


@router.put("/{career_id}", response_model=CareerOut)
async def update_career(
    career_id: int,
    body: CareerUpdate,
    identity: RequestIdentity = Depends(require_secretary),
    careers: CareerRepository = Depends(get_career_repo),
) -> CareerOut:
    existing = load_scoped(await careers.find_by_id(career_id), identity, "career", career_id)

    changes = body.model_dump(exclude_none=True)
    if changes.get("name") == "" or changes.get("code") == "":
        raise BadRequestError("Name and code cannot be empty.")

    updated = await careers.update(replace(existing, **changes))
    return CareerOut.from_career(updated)


@router.delete("/{career_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_career(
    career_id: int,
    identity: RequestIdentity = Depends(require_secretary),
    careers: CareerRepository = Depends(get_career_repo),
) -> Response:
    load_scoped(await careers.find_by_id(career_id), identity, "career", career_id)
    await careers.delete(career_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
