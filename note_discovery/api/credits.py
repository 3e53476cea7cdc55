"""Credit balance and premium redemption endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..core.errors import ConfigurationError, ItemNotFound, LedgerContention
from ..models.content import RedemptionStatus
from ..models.request import RedeemRequest
from ..models.response import BalanceResponse, RedemptionListResponse, RedemptionResponse

router = APIRouter(prefix="/api/v1/credits", tags=["credits"])
settings = get_settings()

# Import the global search engine instance
from ..engine_instance import search_engine


def current_user(request: Request) -> str:
    """Identity forwarded by the session layer; this service never authenticates."""
    user_id = request.headers.get(settings.user_id_header, "").strip()
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail=f"Missing {settings.user_id_header} header"
        )
    return user_id


@router.get(
    "/balance",
    response_model=BalanceResponse,
    summary="Get credit balance",
    description="Get the current user's credit balance"
)
def get_balance(user_id: str = Depends(current_user)) -> BalanceResponse:
    """Get the caller's balance. Unknown users start at zero."""
    return BalanceResponse(user_id=user_id, balance=search_engine.get_balance(user_id))


@router.post(
    "/redeem",
    response_model=RedemptionResponse,
    summary="Unlock a premium item",
    description="Debit the item's credit price once and grant access; replays are free",
    responses={402: {"model": RedemptionResponse}}
)
def redeem(request: RedeemRequest, user_id: str = Depends(current_user)) -> JSONResponse:
    """
    Unlock a premium item for the caller.

    The price comes from the corpus, never from the client. Repeating the
    request for an unlocked item returns ``already_unlocked`` without a new
    debit. A short balance answers 402 with the exact shortfall.
    """
    try:
        outcome = search_engine.redeem(user_id, request.item_id)
    except ItemNotFound:
        raise HTTPException(
            status_code=404,
            detail=f"Premium item '{request.item_id}' not found"
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LedgerContention:
        raise HTTPException(
            status_code=503,
            detail="Account is busy, please retry",
            headers={"Retry-After": "1"}
        )

    status_code = 402 if outcome.status == RedemptionStatus.INSUFFICIENT_CREDITS else 200
    body = RedemptionResponse(
        status=outcome.status.value,
        user_id=outcome.user_id,
        item_id=outcome.item_id,
        balance=outcome.balance,
        shortfall=outcome.shortfall,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get(
    "/redemptions",
    response_model=RedemptionListResponse,
    summary="List unlocked items",
    description="Premium items the current user has already paid for"
)
def list_redemptions(user_id: str = Depends(current_user)) -> RedemptionListResponse:
    records = search_engine.ledger.redemptions(user_id)
    return RedemptionListResponse(user_id=user_id, redemptions=records, total=len(records))
