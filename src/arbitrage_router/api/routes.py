"""Client-facing API: quotes and protected transactions."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, Field

from arbitrage_router.errors import Unauthorized
from arbitrage_router.mev_protection.protection_scheduler import ProtectionLevel
from arbitrage_router.mev_protection.risk_engine import TransactionParams
from arbitrage_router.pathfinding.route_models import ArbitrageRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class QuoteRequest(BaseModel):
    """Request body for a route quote."""
    input_token: str
    output_token: str
    input_amount: int
    max_hops: Optional[int] = None
    preferred_venues: List[str] = Field(default_factory=list)


class HopModel(BaseModel):
    venue: str
    input_token: str
    output_token: str
    input_amount: int
    expected_output: int
    fees: int
    price_impact_bps: int


class QuoteResponse(BaseModel):
    """Quoted route."""
    input_token: str
    output_token: str
    input_amount: int
    expected_output: int
    estimated_fees: int
    price_impact_bps: int
    hops: List[HopModel]
    timestamp: float


class ProtectedTransactionRequest(BaseModel):
    """Request body for submitting a protected transaction."""
    input_token: str
    output_token: str
    input_amount: int
    min_output_amount: int
    max_slippage_bps: int
    venue: Optional[str] = None
    max_hops: int = 1
    preferred_venues: List[str] = Field(default_factory=list)
    protection_level: ProtectionLevel = ProtectionLevel.BASIC


class ProtectedTransactionResponse(BaseModel):
    """Protected transaction state."""
    transaction_id: str
    owner: str
    status: str
    protection_level: str
    mechanisms: Dict[str, bool]
    input_token: str
    output_token: str
    input_amount: int
    min_output_amount: int
    max_slippage_bps: int
    nonce: int
    created_at: int
    execution_deadline: int
    executed_at: Optional[int] = None
    cancelled_at: Optional[int] = None
    risk_deferred: bool = False
    protection_fee: int = 0
    risk_level: Optional[str] = None
    execution: Optional[Dict[str, Any]] = None


def _engine(request: Request):
    return request.app.state.engine


def _require_caller(caller_id: Optional[str]) -> str:
    if not caller_id:
        raise Unauthorized("X-Caller-Id header is required")
    return caller_id


@router.post("/quote", response_model=QuoteResponse)
async def get_quote(body: QuoteRequest, request: Request) -> QuoteResponse:
    """Quote the best route without executing it."""
    quote = await _engine(request).router.get_quote(ArbitrageRequest(
        input_token=body.input_token,
        output_token=body.output_token,
        input_amount=body.input_amount,
        min_output_amount=0,
        max_hops=body.max_hops,
        preferred_venues=body.preferred_venues,
    ))
    return QuoteResponse(
        input_token=quote.input_token,
        output_token=quote.output_token,
        input_amount=quote.input_amount,
        expected_output=quote.expected_output,
        estimated_fees=quote.estimated_fees,
        price_impact_bps=quote.price_impact_bps,
        hops=[
            HopModel(
                venue=hop.venue_id,
                input_token=hop.input_token,
                output_token=hop.output_token,
                input_amount=hop.input_amount,
                expected_output=hop.expected_output,
                fees=hop.fees,
                price_impact_bps=hop.price_impact_bps,
            )
            for hop in quote.route.hops
        ],
        timestamp=quote.timestamp,
    )


@router.post("/protected", response_model=ProtectedTransactionResponse, status_code=201)
async def create_protected_transaction(
    body: ProtectedTransactionRequest,
    request: Request,
    x_caller_id: Optional[str] = Header(default=None)
) -> Dict[str, Any]:
    """Submit a swap intent for protected execution."""
    owner = _require_caller(x_caller_id)
    transaction = _engine(request).scheduler.create(
        owner,
        TransactionParams(
            input_token=body.input_token,
            output_token=body.output_token,
            input_amount=body.input_amount,
            min_output_amount=body.min_output_amount,
            max_slippage_bps=body.max_slippage_bps,
            venue=body.venue,
            max_hops=body.max_hops,
            preferred_venues=body.preferred_venues,
        ),
        body.protection_level,
    )
    return transaction.to_dict()


@router.get("/protected/{transaction_id}", response_model=ProtectedTransactionResponse)
async def get_protected_transaction(
    transaction_id: str,
    request: Request,
    x_caller_id: Optional[str] = Header(default=None)
) -> Dict[str, Any]:
    """Fetch a protected transaction; visible to its owner only."""
    caller = _require_caller(x_caller_id)
    transaction = _engine(request).scheduler.get(transaction_id)
    if caller != transaction.owner:
        logger.warning(f"{caller!r} attempted to read {transaction_id}")
        raise Unauthorized(f"{caller!r} does not own {transaction_id}")
    return transaction.to_dict()


@router.post("/protected/{transaction_id}/execute", response_model=ProtectedTransactionResponse)
async def execute_protected_transaction(
    transaction_id: str,
    request: Request,
    x_caller_id: Optional[str] = Header(default=None)
) -> Dict[str, Any]:
    """Execute a protected transaction once its deadline has passed."""
    caller = _require_caller(x_caller_id)
    transaction = await _engine(request).scheduler.execute(transaction_id, caller)
    return transaction.to_dict()


@router.post("/protected/{transaction_id}/cancel", response_model=ProtectedTransactionResponse)
async def cancel_protected_transaction(
    transaction_id: str,
    request: Request,
    x_caller_id: Optional[str] = Header(default=None)
) -> Dict[str, Any]:
    """Cancel a pending protected transaction before its deadline."""
    caller = _require_caller(x_caller_id)
    return _engine(request).scheduler.cancel(transaction_id, caller).to_dict()
