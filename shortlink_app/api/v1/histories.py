from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, Response, status

from shortlink_app.api.v1.params import parse_ids
from shortlink_app.dependencies import get_history_service, require_auth
from shortlink_app.schemas.common import HistoryListParams, PagedResponse
from shortlink_app.schemas.history import HistoryResponse
from shortlink_app.services.history_service import HistoryService

router = APIRouter(prefix="/histories", tags=["histories"], dependencies=[Depends(require_auth)])


@router.get("", response_model=PagedResponse[HistoryResponse])
async def list_histories(
    params: Annotated[HistoryListParams, Query()],
    history_service: HistoryService = Depends(get_history_service)
):
    return await history_service.list(params)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_histories(
    ids: List[int] = Depends(parse_ids),
    history_service: HistoryService = Depends(get_history_service)
):
    await history_service.delete_batch(ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
