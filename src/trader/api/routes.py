"""JSON endpoints: trades, wallet, engine logs and manual close."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from trader.models import CloseReason, LogEntry, LogType, PositionStatus, Trade

log = structlog.get_logger(__name__)

router = APIRouter()


class ClosePositionRequest(BaseModel):
    """Body of a manual close: the price to close at."""

    price: Decimal = Field(gt=0)


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_decimal_to_str(item) for item in obj]
    return obj


def _trade_to_dict(trade: Trade) -> dict[str, Any]:
    return _decimal_to_str({
        "id": trade.id,
        "symbol": trade.symbol,
        "side": trade.side.value,
        "role": trade.role.value,
        "entry_price": trade.entry_price,
        "size": trade.size,
        "leverage": trade.leverage,
        "stop_loss": trade.stop_loss,
        "take_profit": trade.take_profit,
        "status": trade.status.value,
        "pnl": trade.pnl,
        "created_at": trade.created_at,
        "closed_at": trade.closed_at,
        "close_reason": trade.close_reason.value if trade.close_reason else None,
    })


@router.get("/trades")
async def get_trades(
    request: Request, status: PositionStatus = PositionStatus.OPEN
) -> JSONResponse:
    """Legs with the given status (OPEN by default)."""
    store = request.app.state.store
    trades = await store.get_trades_by_status(status)
    return JSONResponse(content={"trades": [_trade_to_dict(t) for t in trades]})


@router.get("/wallet")
async def get_wallet(
    request: Request, history_limit: int = Query(100, ge=1, le=1000)
) -> JSONResponse:
    """Current balance and the balance history after each close."""
    store = request.app.state.store
    balance = await store.get_wallet_balance()
    history = await store.get_wallet_history(history_limit)
    return JSONResponse(content=_decimal_to_str({"balance": balance, "history": history}))


@router.get("/logs")
async def get_logs(
    request: Request,
    type: LogType | None = None,
    limit: int = Query(50, ge=1, le=500),
) -> JSONResponse:
    """Most recent engine log entries, newest first."""
    store = request.app.state.store
    entries = await store.get_recent_logs(type, limit=limit)
    return JSONResponse(content={
        "logs": [
            {
                "id": e.id,
                "created_at": e.created_at,
                "type": e.type.value,
                "message": e.message,
                "ai_response": e.ai_response,
                "market_data": e.market_data,
            }
            for e in entries
        ]
    })


@router.post("/positions/{trade_id}/close")
async def close_position(
    request: Request, trade_id: int, body: ClosePositionRequest
) -> JSONResponse:
    """Manually close one OPEN leg at the given price."""
    position_manager = request.app.state.position_manager
    store = request.app.state.store

    result = await position_manager.close_position(trade_id, body.price, CloseReason.MANUAL)
    if result is None:
        raise HTTPException(status_code=404, detail="Trade not found or already closed")

    await store.insert_log(
        LogEntry(
            type=LogType.INFO,
            message=f"Manually closed Trade #{trade_id}. Net PnL: ${result.net_pnl:.2f}",
        )
    )
    log.info("position_closed_via_api", trade_id=trade_id, net_pnl=str(result.net_pnl))

    return JSONResponse(content=_decimal_to_str({
        "success": True,
        "pnl": result.net_pnl,
        "gross_pnl": result.gross_pnl,
        "fees": result.fees,
        "balance": result.balance_after,
    }))
