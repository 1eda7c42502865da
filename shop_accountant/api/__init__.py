from .client import ApiClient, ApiResponse
from .resources import ShopAPI

__all__ = ["ApiClient", "ApiResponse", "ShopAPI"]
