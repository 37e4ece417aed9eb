"""
Routes des œuvres: consultation publique, recherche, écriture et modération.

Les contrôleurs restent minces: ils lisent les paramètres, transmettent l'acteur (`X-User-Id`)
au service et renvoient le DTO sortant tel quel. Les erreurs métier remontent jusqu'aux
gestionnaires de `heritage.apigw.errors`.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from heritage.api.deps import ListParams, get_actor_id, get_oeuvre_service, list_params
from heritage.api.schemas import FeatureRequest, ReasonRequest
from heritage.core.http_constants import HTTP_CREATED
from heritage.infra.repo.oeuvre_repository import DEFAULT_HIGHLIGHT_LIMIT
from heritage.services.oeuvre_service import OeuvreService

router = APIRouter(prefix="/oeuvres", tags=["oeuvres"])

service_dep = Depends(get_oeuvre_service)
actor_dep = Depends(get_actor_id)
params_dep = Depends(list_params)

# clés de recherche avancée acceptées en paramètres de requête
ADVANCED_KEYS = (
    "q",
    "work_type_id",
    "owner_id",
    "status",
    "year_min",
    "year_max",
    "price_min",
    "price_max",
    "category_ids",
    "tag_ids",
    "sort",
    "direction",
)


@router.get("")
def list_published(
    params: ListParams = params_dep,
    order: str | None = Query(default=None),
    service: OeuvreService = service_dep,
):
    """Œuvres publiées, paginées (`{data, pagination}`)."""
    return service.list_published(
        params.page, params.limit, lang=params.lang, full=params.full, order=order
    )


@router.get("/search")
def search(
    q: str = Query(default=""),
    params: ListParams = params_dep,
    service: OeuvreService = service_dep,
):
    """Recherche plein texte dans toutes les langues des champs traduisibles."""
    return service.search(q, params.page, params.limit, lang=params.lang, full=params.full)


@router.get("/search/advanced")
def search_advanced(
    q: str | None = Query(default=None),
    work_type_id: str | None = Query(default=None),
    owner_id: str | None = Query(default=None),
    status: str | None = Query(default=None),
    year_min: str | None = Query(default=None),
    year_max: str | None = Query(default=None),
    price_min: str | None = Query(default=None),
    price_max: str | None = Query(default=None),
    category_ids: str | None = Query(default=None),
    tag_ids: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    direction: str | None = Query(default=None),
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    """Recherche multicritère (statut libre pour les administrateurs uniquement)."""
    values = (
        q,
        work_type_id,
        owner_id,
        status,
        year_min,
        year_max,
        price_min,
        price_max,
        category_ids,
        tag_ids,
        sort,
        direction,
    )
    filters = {key: value for key, value in zip(ADVANCED_KEYS, values) if value is not None}
    return service.search_advanced(
        filters, actor_id=actor_id, page=params.page, limit=params.limit, lang=params.lang
    )


@router.get("/popular")
def popular(
    limit: int = Query(default=DEFAULT_HIGHLIGHT_LIMIT, ge=1),
    lang: str | None = Query(default=None),
    service: OeuvreService = service_dep,
):
    return {"data": service.popular(limit, lang=lang)}


@router.get("/recent")
def recent(
    limit: int = Query(default=DEFAULT_HIGHLIGHT_LIMIT, ge=1),
    lang: str | None = Query(default=None),
    service: OeuvreService = service_dep,
):
    return {"data": service.recent(limit, lang=lang)}


@router.get("/pending")
def list_pending(
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    """File de modération (administrateurs)."""
    return service.list_pending(actor_id, params.page, params.limit, lang=params.lang)


@router.get("/admin")
def list_all(
    status: str | None = Query(default=None),
    include_deleted: bool = Query(default=False),
    order: str | None = Query(default=None),
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    """Vue d'administration de toutes les œuvres."""
    where = {"status": status} if status else None
    return service.list_all(
        actor_id,
        where=where,
        page=params.page,
        limit=params.limit,
        include_deleted=include_deleted,
        order=order,
        lang=params.lang,
    )


@router.get("/stats")
def stats(actor_id: str | None = actor_dep, service: OeuvreService = service_dep):
    return service.get_stats(actor_id)


@router.get("/owner/{owner_id}")
def list_by_owner(
    owner_id: str,
    status: str | None = Query(default=None),
    params: ListParams = params_dep,
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.list_by_owner(
        owner_id, actor_id, params.page, params.limit, status=status, lang=params.lang
    )


@router.get("/type/{work_type_id}")
def list_by_type(
    work_type_id: str, params: ListParams = params_dep, service: OeuvreService = service_dep
):
    return service.list_by_type(work_type_id, params.page, params.limit, lang=params.lang)


@router.get("/category/{category_id}")
def list_by_category(
    category_id: str, params: ListParams = params_dep, service: OeuvreService = service_dep
):
    return service.list_by_category(category_id, params.page, params.limit, lang=params.lang)


@router.get("/{oeuvre_id}")
def get_oeuvre(
    oeuvre_id: str,
    lang: str | None = Query(default=None),
    full: bool = Query(default=False),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    """Fiche d'une œuvre; une vue est comptabilisée si elle est publiée."""
    return service.get_details(oeuvre_id, actor_id, lang=lang, full=full)


@router.get("/{oeuvre_id}/similar")
def similar(
    oeuvre_id: str,
    limit: int = Query(default=DEFAULT_HIGHLIGHT_LIMIT, ge=1),
    lang: str | None = Query(default=None),
    service: OeuvreService = service_dep,
):
    return {"data": service.similar(oeuvre_id, limit, lang=lang)}


@router.post("", status_code=HTTP_CREATED)
def create_oeuvre(
    body: dict[str, Any] = Body(...),
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    """Crée une œuvre en brouillon (professionnels validés et administrateurs)."""
    return service.create(body, actor_id, lang=lang)


@router.patch("/{oeuvre_id}")
def update_oeuvre(
    oeuvre_id: str,
    body: dict[str, Any] = Body(...),
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.update(oeuvre_id, body, actor_id, lang=lang)


@router.post("/{oeuvre_id}/submit")
def submit(
    oeuvre_id: str,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.submit(oeuvre_id, actor_id, lang=lang)


@router.post("/{oeuvre_id}/approve")
def approve(
    oeuvre_id: str,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.approve(oeuvre_id, actor_id, lang=lang)


@router.post("/{oeuvre_id}/reject")
def reject(
    oeuvre_id: str,
    payload: ReasonRequest,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.reject(oeuvre_id, actor_id, payload.reason, lang=lang)


@router.post("/{oeuvre_id}/archive")
def archive(
    oeuvre_id: str,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.archive(oeuvre_id, actor_id, lang=lang)


@router.post("/{oeuvre_id}/feature")
def feature(
    oeuvre_id: str,
    payload: FeatureRequest,
    lang: str | None = Query(default=None),
    actor_id: str | None = actor_dep,
    service: OeuvreService = service_dep,
):
    return service.set_featured(oeuvre_id, actor_id, payload.featured, lang=lang)


@router.delete("/{oeuvre_id}")
def delete_oeuvre(
    oeuvre_id: str, actor_id: str | None = actor_dep, service: OeuvreService = service_dep
):
    """Suppression logique (statut `deleted`)."""
    return {"deleted": service.delete(oeuvre_id, actor_id)}


@router.delete("/{oeuvre_id}/purge")
def purge(
    oeuvre_id: str, actor_id: str | None = actor_dep, service: OeuvreService = service_dep
):
    """Suppression physique (administrateurs)."""
    return {"deleted": service.purge(oeuvre_id, actor_id)}
