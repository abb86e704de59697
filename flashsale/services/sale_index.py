from typing import Set
from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from flashsale.redis.keys import SALE_INDEX_KEY


class SaleIndex:
    """
    Set of registered sale ids, kept in a redis SET.
    Membership changes go through SADD / SREM so concurrent creates and deletes never lose each other.
    The queue_* variants add the command to a MULTI pipeline so membership changes together with the sale keys.
    """

    async def add(self, sale_id: str, redis: Redis) -> None:
        await redis.sadd(SALE_INDEX_KEY, sale_id)

    async def remove(self, sale_id: str, redis: Redis) -> bool:
        return await redis.srem(SALE_INDEX_KEY, sale_id) == 1

    async def list_all(self, redis: Redis) -> Set[str]:
        members = await redis.smembers(SALE_INDEX_KEY)
        return set(members)

    def queue_add(self, sale_id: str, pipe: Pipeline) -> None:
        pipe.sadd(SALE_INDEX_KEY, sale_id)

    def queue_remove(self, sale_id: str, pipe: Pipeline) -> None:
        pipe.srem(SALE_INDEX_KEY, sale_id)


sale_index = SaleIndex()
