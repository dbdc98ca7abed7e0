from .admin_users import AdminUsersClient
from .analytics import AnalyticsClient
from .auth import AuthClient
from .catalog import CatalogClient
from .images import ImagesClient
from .orders import OrdersClient
from .profile import ProfileClient

__all__ = [
    "AdminUsersClient",
    "AnalyticsClient",
    "AuthClient",
    "CatalogClient",
    "ImagesClient",
    "OrdersClient",
    "ProfileClient",
]
