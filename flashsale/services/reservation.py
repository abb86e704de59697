"""
Reservation protocol: claim one unit of a sale for one user.

    check_preconditions(sale) -> SALE_NOT_FOUND | SALE_NOT_ACTIVE(reason) | None
    reserve(sale_id, user_id, purchase_id, redis) -> CLAIMED(new_stock) | ALREADY_CLAIMED | SOLD_OUT | SALE_NOT_FOUND

The precondition half reads the derived status and touches no shared state.
The atomic half runs entirely inside redis.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from redis.asyncio import Redis
from flashsale.exception import InvariantViolationException
from flashsale.redis.keys import stock_key, user_purchase_key
from flashsale.schemas.flash_sale import FlashSale, SaleStatus

logger = logging.getLogger(__name__)

# Runs as one unit inside redis, no other client can observe or interleave with the intermediate state.
# Both keys carry the {sale_id} hash tag so they live on the same cluster slot.
LUA_SCRIPT_RESERVE_UNIT = """
-- KEYS[1] = stock counter key
-- KEYS[2] = user purchase marker key
-- ARGV[1] = purchase id

-- 1. Prevent double buying
if redis.call('EXISTS', KEYS[2]) == 1 then
   return {-2, -1}  -- User already purchased
end

-- 2. Read current stock, a missing counter means the sale was deleted
local stock = redis.call('GET', KEYS[1])
if not stock then
  return {-3, -1}  -- Sale not found
end
if tonumber(stock) <= 0 then
  return {-1, tonumber(stock)}  -- Out of stock
end

-- 3. Mark the user and decrement stock
redis.call('SET', KEYS[2], ARGV[1])
local new_stock = redis.call('DECR', KEYS[1])

return {1, new_stock}  -- Success
"""

NOT_ACTIVE_REASONS = {
    SaleStatus.UPCOMING: "not_started",
    SaleStatus.ENDED: "ended",
    SaleStatus.SOLD_OUT: "sold_out",
}


class ReservationOutcome(int, Enum):
    CLAIMED = 1
    SOLD_OUT = -1
    ALREADY_CLAIMED = -2
    SALE_NOT_FOUND = -3
    # precondition only, the script never returns it
    SALE_NOT_ACTIVE = -4


@dataclass(frozen=True)
class ReservationResult:
    outcome: ReservationOutcome
    new_stock: Optional[int] = None
    reason: Optional[str] = None

    @property
    def claimed(self) -> bool:
        return self.outcome == ReservationOutcome.CLAIMED


def check_preconditions(sale: Optional[FlashSale]) -> Optional[ReservationResult]:
    """Return the rejection for a sale that is missing or not active, None when a claim may proceed."""
    if sale is None:
        return ReservationResult(ReservationOutcome.SALE_NOT_FOUND)
    if sale.status != SaleStatus.ACTIVE:
        return ReservationResult(ReservationOutcome.SALE_NOT_ACTIVE, reason=NOT_ACTIVE_REASONS[sale.status])
    return None


async def reserve(sale_id: str, user_id: str, purchase_id: str, redis: Redis) -> ReservationResult:
    """
    Atomically claim one unit of `sale_id` for `user_id`.

    The marker check, the stock check and both mutations happen inside a single
    redis script, so two callers in different processes can never both see
    "stock available" or "not yet purchased" for the same unit or user.
    A repeated call for a user that already claimed returns ALREADY_CLAIMED
    and leaves the counter alone.
    """
    # EVALSHA, falling back to EVAL + SCRIPT LOAD when the server has not cached the script yet
    script = redis.register_script(LUA_SCRIPT_RESERVE_UNIT)
    code, stock = await script(
        keys=[stock_key(sale_id), user_purchase_key(sale_id, user_id)],
        args=[purchase_id])
    outcome = ReservationOutcome(int(code))
    if outcome == ReservationOutcome.CLAIMED:
        stock = int(stock)
        if stock < 0:
            logger.critical(f"Stock counter for sale {sale_id} went negative ({stock}) after claim {purchase_id}")
            raise InvariantViolationException(f"Stock counter for sale {sale_id} is negative")
        return ReservationResult(outcome, new_stock=stock)
    if outcome == ReservationOutcome.SOLD_OUT and int(stock) < 0:
        logger.critical(f"Stock counter for sale {sale_id} observed negative ({stock})")
        raise InvariantViolationException(f"Stock counter for sale {sale_id} is negative")
    return ReservationResult(outcome)
