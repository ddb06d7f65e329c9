from .locations import Location, LOCATION_TYPE_WAREHOUSE, LOCATION_TYPE_SHOWROOM, LOCATION_TYPES
from .inventory import Product, ProductLot
from .sales import Sale
from .documents import Transfer
from .auth import User, UserLocationAccess, UserModuleGrant, SessionToken
from .security import SecurityEvent

__all__ = [
    'Location', 'LOCATION_TYPE_WAREHOUSE', 'LOCATION_TYPE_SHOWROOM', 'LOCATION_TYPES',
    'Product', 'ProductLot',
    'Sale',
    'Transfer',
    'User', 'UserLocationAccess', 'UserModuleGrant', 'SessionToken',
    'SecurityEvent',
]
