"""
Routes des utilisateurs: inscription, profils, annuaire des professionnels et modération des comptes.

L'émission des jetons de session reste hors de ce module: `/users/login` se contente de vérifier
les identifiants et d'horodater la connexion.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from heritage.api.deps import ListParams, get_actor_id, get_user_service, list_params
from heritage.api.schemas import (
    CredentialsRequest,
    PasswordChangeRequest,
    ReasonRequest,
    SuspendRequest,
)
from heritage.core.http_constants import HTTP_CREATED
from heritage.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])

service_dep = Depends(get_user_service)
actor_dep = Depends(get_actor_id)
params_dep = Depends(list_params)


@router.post("", status_code=HTTP_CREATED)
def register(
    body: dict[str, Any] = Body(...),
    lang: str | None = Query(default=None),
    service: UserService = service_dep,
):
    """Inscription (visiteurs approuvés d'office, professionnels en attente)."""
    return service.register(body, lang=lang)


@router.post("/login")
def login(
    payload: CredentialsRequest,
    lang: str | None = Query(default=None),
    service: UserService = service_dep,
):
    return service.verify_credentials(payload.email, payload.password, lang=lang)


@router.get("")
def list_users(
    user_type: str | None = Query(default=None),
    validation_status: str | None = Query(default=None),
    order: str | None = Query(default=None),
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    """Liste d'administration, filtrable par type et statut de validation."""
    where = {
        key: value
        for key, value in (("user_type", user_type), ("validation_status", validation_status))
        if value
    }
    return service.list(
        actor_id,
        where=where or None,
        page=params.page,
        limit=params.limit,
        order=order,
        lang=params.lang,
    )


@router.get("/search")
def search(
    q: str = Query(default=""),
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.search(q, actor_id, params.page, params.limit, lang=params.lang)


@router.get("/professionals")
def professionals(
    user_type: str | None = Query(default=None),
    params: ListParams = params_dep,
    service: UserService = service_dep,
):
    """Annuaire des professionnels validés."""
    return service.find_validated_professionals(
        user_type, params.page, params.limit, lang=params.lang
    )


@router.get("/pending")
def pending(
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.find_pending_validation(actor_id, params.page, params.limit, lang=params.lang)


@router.get("/stats")
def stats(actor_id: str | None = actor_dep, service: UserService = service_dep):
    return service.get_stats(actor_id)


@router.get("/type/{user_type}")
def by_type(user_type: str, params: ListParams = params_dep, service: UserService = service_dep):
    return service.find_by_type(user_type, params.page, params.limit, lang=params.lang)


@router.get("/{user_id}")
def get_user(
    user_id: str,
    lang: str | None = Query(default=None),
    full: bool = Query(default=False),
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.get(user_id, actor_id, lang=lang, full=full)


@router.patch("/{user_id}")
def update_user(
    user_id: str,
    body: dict[str, Any] = Body(...),
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.update(user_id, body, actor_id, lang=lang)


@router.post("/{user_id}/password")
def change_password(
    user_id: str,
    payload: PasswordChangeRequest,
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    changed = service.change_password(
        user_id, actor_id, payload.current_password, payload.new_password
    )
    return {"changed": changed}


@router.post("/{user_id}/validate")
def validate(
    user_id: str,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.validate(user_id, actor_id, lang=lang)


@router.post("/{user_id}/reject")
def reject(
    user_id: str,
    payload: ReasonRequest,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.reject(user_id, actor_id, payload.reason, lang=lang)


@router.post("/{user_id}/suspend")
def suspend(
    user_id: str,
    payload: SuspendRequest,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.suspend(user_id, actor_id, payload.duration_days, payload.reason, lang=lang)


@router.post("/{user_id}/reactivate")
def reactivate(
    user_id: str,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: UserService = service_dep,
):
    return service.reactivate(user_id, actor_id, lang=lang)


@router.delete("/{user_id}")
def delete_user(
    user_id: str, actor_id: str | None = actor_dep, service: UserService = service_dep
):
    """Suppression physique d'un compte (administrateurs)."""
    return {"deleted": service.delete(user_id, actor_id)}
