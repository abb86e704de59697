# Redis Hash Tags: {tag} ensures all keys with same tag go to same shard in Redis Cluster
# This is required for the reservation Lua script to work in cluster mode (avoids CROSSSLOT errors)
# Key pattern: flashsale:{sale_id}, flashsale:{sale_id}:stock, flashsale:{sale_id}:user:{user_id}

SALE_INDEX_KEY = "flashsale:ids"


def sale_key(sale_id: str) -> str:
    return f"flashsale:{{{sale_id}}}"


def stock_key(sale_id: str) -> str:
    return f"{sale_key(sale_id)}:stock"


def user_purchase_key(sale_id: str, user_id: str) -> str:
    return f"{sale_key(sale_id)}:user:{user_id}"
