import logging

from fastapi import APIRouter, HTTPException, Request, Response, status

from gift_reveal.api.deps import (
    ClockDep,
    ContentStoreDep,
    CurrentUserDep,
    GiftCacheDep,
    GiftStoreDep,
    OptionalUserDep,
)
from gift_reveal.core.audit import AuditAction, audit_gift_action
from gift_reveal.models.models import Gift
from gift_reveal.schemas.gift import (
    ContentDocument,
    GalleryPhoto,
    GiftAdmin,
    GiftCreate,
    GiftSummary,
    GiftUpdate,
    LatestGift,
    RenderedGift,
)
from gift_reveal.services import reveal
from gift_reveal.services.errors import ContentWriteError, GiftConflictError, InvalidGiftInputError


router = APIRouter(tags=["gifts"])
admin_router = APIRouter(prefix="/admin/gifts", tags=["admin"])
logger = logging.getLogger("gift_reveal.gifts")


def _to_admin(gift: Gift, content: ContentDocument | None = None) -> GiftAdmin:
    return GiftAdmin.model_validate(gift).model_copy(update={"content": content})


def _conflict(exc: GiftConflictError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("/gifts", response_model=list[GiftSummary])
async def list_gifts(store: GiftStoreDep, clock: ClockDep) -> list[GiftSummary]:
    return await reveal.list_gift_index(store, clock.now())


@router.get("/gifts/latest", response_model=LatestGift)
async def latest_gift(store: GiftStoreDep, clock: ClockDep) -> LatestGift:
    gift = await reveal.find_latest_open(store, clock.now())
    if gift is None:
        return LatestGift()
    return LatestGift(id=gift.id, number=gift.number)


@router.get("/gifts/{gift_id}", response_model=RenderedGift)
async def get_gift(
    gift_id: str,
    store: GiftStoreDep,
    contents: ContentStoreDep,
    cache: GiftCacheDep,
    clock: ClockDep,
    viewer: OptionalUserDep,
) -> RenderedGift:
    rendered = await reveal.render_gift(store, contents, gift_id, clock.now(), viewer is not None, cache=cache)
    if rendered is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gift not found")
    return rendered


@router.get("/gallery", response_model=list[GalleryPhoto])
async def gallery(store: GiftStoreDep, clock: ClockDep, viewer: OptionalUserDep) -> list[GalleryPhoto]:
    return await reveal.list_gallery(store, clock.now(), viewer is not None)


@admin_router.get("", response_model=list[GiftAdmin])
async def admin_list_gifts(store: GiftStoreDep, current_user: CurrentUserDep) -> list[GiftAdmin]:
    return [_to_admin(gift) for gift in await store.list_all("number")]


@admin_router.get("/{gift_id}", response_model=GiftAdmin)
async def admin_get_gift(
    gift_id: str,
    store: GiftStoreDep,
    contents: ContentStoreDep,
    current_user: CurrentUserDep,
) -> GiftAdmin:
    gift = await store.find_by_id(gift_id)
    if gift is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gift not found")
    return _to_admin(gift, await reveal.load_admin_content(contents, gift))


@admin_router.post("", response_model=GiftAdmin, status_code=status.HTTP_201_CREATED)
async def admin_create_gift(
    payload: GiftCreate,
    request: Request,
    store: GiftStoreDep,
    contents: ContentStoreDep,
    cache: GiftCacheDep,
    current_user: CurrentUserDep,
) -> GiftAdmin:
    try:
        gift = await reveal.create_gift(store, contents, payload, cache=cache)
    except GiftConflictError as exc:
        audit_gift_action(AuditAction.GIFT_CREATE, request, current_user.id, None, {"number": payload.number}, success=False)
        raise _conflict(exc) from exc
    except InvalidGiftInputError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors) from exc
    except ContentWriteError as exc:
        logger.error("Gift create rolled back number=%s gift_id=%s", payload.number, exc.gift_id)
        audit_gift_action(AuditAction.GIFT_CREATE, request, current_user.id, exc.gift_id, {"number": payload.number}, success=False)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    audit_gift_action(AuditAction.GIFT_CREATE, request, current_user.id, gift.id, {"number": gift.number})
    return _to_admin(gift, payload.content or ContentDocument())


@admin_router.put("/{gift_id}", response_model=GiftAdmin)
async def admin_update_gift(
    gift_id: str,
    payload: GiftUpdate,
    request: Request,
    store: GiftStoreDep,
    contents: ContentStoreDep,
    cache: GiftCacheDep,
    current_user: CurrentUserDep,
) -> GiftAdmin:
    try:
        gift = await reveal.update_gift(store, contents, gift_id, payload, cache=cache)
    except GiftConflictError as exc:
        raise _conflict(exc) from exc
    except ContentWriteError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    if gift is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gift not found")

    audit_gift_action(
        AuditAction.GIFT_UPDATE,
        request,
        current_user.id,
        gift.id,
        {"fields": sorted(payload.model_fields_set)},
    )
    return _to_admin(gift, await reveal.load_admin_content(contents, gift))


@admin_router.delete("/{gift_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_gift(
    gift_id: str,
    request: Request,
    store: GiftStoreDep,
    contents: ContentStoreDep,
    cache: GiftCacheDep,
    current_user: CurrentUserDep,
) -> Response:
    if not await reveal.delete_gift(store, contents, gift_id, cache=cache):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gift not found")
    audit_gift_action(AuditAction.GIFT_DELETE, request, current_user.id, gift_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
