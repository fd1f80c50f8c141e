from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, Response, status

from shortlink_app.api.v1.params import parse_ids
from shortlink_app.dependencies import get_url_service, require_auth
from shortlink_app.schemas.common import ListParams, PagedResponse
from shortlink_app.schemas.url import ShortenCreate, ShortenResponse, ShortenUpdate
from shortlink_app.services.url_service import URLService

router = APIRouter(prefix="/shortens", tags=["shortens"], dependencies=[Depends(require_auth)])


@router.post("", response_model=ShortenResponse, status_code=status.HTTP_201_CREATED)
async def create_shorten(
    payload: ShortenCreate,
    url_service: URLService = Depends(get_url_service)
):
    """Create a short URL; short_code is generated when omitted"""
    record = await url_service.create(payload.original_url, payload.short_code, payload.description)
    return ShortenResponse.model_validate(record.model_dump())


@router.get("", response_model=PagedResponse[ShortenResponse])
async def list_shortens(
    params: Annotated[ListParams, Query()],
    url_service: URLService = Depends(get_url_service)
):
    page = await url_service.list(params)
    return PagedResponse[ShortenResponse](
        data=[ShortenResponse.model_validate(r.model_dump()) for r in page.data],
        meta=page.meta,
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shortens(
    ids: List[int] = Depends(parse_ids),
    url_service: URLService = Depends(get_url_service)
):
    await url_service.delete_batch(ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{short_code}", response_model=ShortenResponse)
async def get_shorten(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    record = await url_service.get(short_code)
    return ShortenResponse.model_validate(record.model_dump())


@router.put("/{short_code}", response_model=ShortenResponse)
async def update_shorten(
    short_code: str,
    payload: ShortenUpdate,
    url_service: URLService = Depends(get_url_service)
):
    """Partial update: fields left out of the body keep their value"""
    record = await url_service.update(
        short_code,
        original_url=payload.original_url,
        description=payload.description,
        status=payload.status,
    )
    return ShortenResponse.model_validate(record.model_dump())


@router.delete("/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shorten(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    await url_service.delete(short_code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
