from duet.services.auth import AuthService
from duet.services.catalog import CatalogService
from duet.services.client import ServiceClient, check_connection
from duet.services.local_files import LocalFileService

__all__ = [
    'AuthService',
    'CatalogService',
    'LocalFileService',
    'ServiceClient',
    'check_connection',
]
