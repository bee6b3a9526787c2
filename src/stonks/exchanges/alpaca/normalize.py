from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from stonks.core.errors import GatewayError
from stonks.core.models.enums import OrderEventKind
from stonks.core.models.events import OrderUpdateEvent, TickEvent
from stonks.core.models.state import AccountState, PositionSnapshot


def _dec(v: Any) -> Decimal | None:
    if v is None or v == "":
        return None
    try:
        return Decimal(str(v))
    except (InvalidOperation, ValueError):
        return None

def parse_ts(v: Any) -> datetime:
    """RFC3339 (with or without nanoseconds) → aware datetime; now() on failure."""
    if isinstance(v, str) and v:
        s = v.strip().replace("Z", "+00:00")
        # fromisoformat accepts at most 6 fractional digits
        if "." in s:
            head, _, rest = s.partition(".")
            frac = ""
            tz = ""
            for i, ch in enumerate(rest):
                if not ch.isdigit():
                    tz = rest[i:]
                    break
                frac += ch
            s = f"{head}.{frac[:6]}{tz}" if frac else f"{head}{tz}"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return datetime.now(tz=timezone.utc)
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return datetime.now(tz=timezone.utc)

# broker event → core kind; unfilled DAY orders end with "expired"
_EVENT_KINDS = {
    "expired": OrderEventKind.CANCELED.value,
}

def norm_account(raw: dict) -> AccountState:
    equity = _dec(raw.get("equity"))
    mult = _dec(raw.get("multiplier"))
    if equity is None:
        raise GatewayError(f"account payload without equity: {raw!r:.200}")
    if mult is None:
        raise GatewayError(f"account multiplier not parsable: {raw.get('multiplier')!r}")
    return AccountState(
        account_id=str(raw.get("id") or ""),
        equity=equity,
        margin_multiplier=mult,
    )

def norm_position(raw: dict) -> PositionSnapshot:
    qty = _dec(raw.get("qty"))
    if qty is None:
        raise GatewayError(f"position payload without qty: {raw!r:.200}")
    return PositionSnapshot(symbol=str(raw.get("symbol") or "").upper(), qty=qty)

def norm_order_ids(raw: list) -> list[str]:
    return [str(o["id"]) for o in raw or [] if isinstance(o, dict) and o.get("id")]

def norm_trade_tick(raw: dict) -> TickEvent | None:
    """Market-data trade message: {"T":"t","S":"VTI","p":201.5,"t":"..."}"""
    if raw.get("T") != "t":
        return None
    sym = raw.get("S")
    px = _dec(raw.get("p"))
    if not sym or px is None:
        return None
    return TickEvent(symbol=str(sym).upper(), price=px, ts=parse_ts(raw.get("t")))

def norm_trade_update(raw: dict) -> OrderUpdateEvent | None:
    """Trading stream: {"stream":"trade_updates","data":{"event":...,"order":{...}}}"""
    if raw.get("stream") != "trade_updates":
        return None
    data = raw.get("data") or {}
    order = data.get("order") or {}
    order_id = str(order.get("id") or "")
    sym = str(order.get("symbol") or "").upper()
    event = str(data.get("event") or "").lower()
    event = _EVENT_KINDS.get(event, event)
    if not order_id or not sym or not event:
        return None
    return OrderUpdateEvent(
        order_id=order_id,
        symbol=sym,
        kind=event,
        ts=parse_ts(data.get("timestamp") or order.get("updated_at")),
        raw_json=raw,
    )

def norm_latest_quote(raw: dict) -> dict:
    q = raw.get("quote") or {}
    return {
        "symbol": str(raw.get("symbol") or "").upper(),
        "ask_price": _dec(q.get("ap")),
        "ask_size": q.get("as"),
        "bid_price": _dec(q.get("bp")),
        "bid_size": q.get("bs"),
        "timestamp": parse_ts(q.get("t")),
    }
