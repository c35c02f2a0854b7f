# CMS Adapters
# WordPress integration

from .wordpress_adapter import (
    WordPressAdapter,
    WordPressAPIError,
    WordPressConnectionError,
)

__all__ = [
    "WordPressAdapter",
    "WordPressConnectionError",
    "WordPressAPIError",
]
