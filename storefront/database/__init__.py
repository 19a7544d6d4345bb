from storefront.database.async_db import get_async_db, get_async_db_context

__all__ = ["get_async_db", "get_async_db_context"]
