"""
app/connectors package marker.
"""

from app.connectors.base import BackendRequestError, BaseAPIClient
from app.connectors.contact_api_client import ContactImportAPIClient, get_contact_import_api_client

__all__ = [
    "BackendRequestError",
    "BaseAPIClient",
    "ContactImportAPIClient",
    "get_contact_import_api_client",
]
