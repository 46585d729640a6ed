from packages.content.providers.interface import ContentStoreInterface
from packages.content.providers.sql_content_store import SqlContentStore


def get_content_store() -> ContentStoreInterface:
    return SqlContentStore()
