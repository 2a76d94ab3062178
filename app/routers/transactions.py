from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import Settings
from app.dependencies import get_app_settings, get_gateway, get_store
from app.errors import NotFoundError, StoreError, ValidationError
from app.gateways.base import BaseGateway
from app.schemas.records import TransactionStatus
from app.schemas.responses import Pagination, TransactionDetailResponse, TransactionListResponse
from app.services.reporting import TransactionQuery, get_transaction, list_transactions
from app.store.base import TransactionStore

router = APIRouter()


@router.get("", response_model=TransactionListResponse)
async def list_recent(
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    status: Optional[TransactionStatus] = None,
    transaction_id: Optional[str] = Query(None, pattern=r"^[A-Za-z0-9\-_]+$"),
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    store: TransactionStore = Depends(get_store),
    gateway: BaseGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    """
    List local and gateway-reported transactions, newest first.

    - start_date/end_date filter on the transaction timestamp (inclusive)
    - status filters exactly; transaction_id matches id or reference by substring
    - page/limit paginate the merged, de-duplicated list
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError([{"field": "start_date", "message": "start_date must not be after end_date"}])

    query = TransactionQuery(
        start_date=start_date,
        end_date=end_date,
        status=status.value if status else None,
        transaction_id=transaction_id,
        page=page,
        limit=limit,
    )
    try:
        result = await list_transactions(
            store, gateway, query, lookback_days=settings.reporting_lookback_days
        )
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Transaction store error: {str(e)}")

    return TransactionListResponse(
        transactions=result.transactions,
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{transaction_id}", response_model=TransactionDetailResponse)
async def get_detail(
    transaction_id: str,
    store: TransactionStore = Depends(get_store),
    gateway: BaseGateway = Depends(get_gateway),
):
    """Look up a single transaction by exact id, locally first and then at the gateway."""
    try:
        record = await get_transaction(store, gateway, transaction_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Transaction store error: {str(e)}")

    return TransactionDetailResponse(transaction=record)
