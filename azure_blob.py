# azure_blob.py
"""Archive of rendered billing documents in Azure Blob Storage."""
from azure.core.exceptions import AzureError
from azure.storage.blob import BlobServiceClient, ContentSettings

import config
from exceptions import DependencyFailure

_blob_service = None


def is_configured() -> bool:
     return bool(config.AZURE_STORAGE_ACCOUNT and config.AZURE_STORAGE_KEY)


def _get_blob_service() -> BlobServiceClient:
     global _blob_service
     if _blob_service is None:
          if not is_configured():
               raise DependencyFailure("Azure storage is not configured")
          _blob_service = BlobServiceClient.from_connection_string(
               f"DefaultEndpointsProtocol=https;"
               f"AccountName={config.AZURE_STORAGE_ACCOUNT};"
               f"AccountKey={config.AZURE_STORAGE_KEY};"
               f"EndpointSuffix=core.windows.net"
          )
     return _blob_service


def upload_document(content: bytes, blob_name: str, container: str = None,
                    content_type: str = "application/pdf") -> str:
     """Store ``content`` at ``container/blob_name`` and return its URL."""
     container = container or config.DOCUMENTS_CONTAINER
     try:
          blob_client = _get_blob_service().get_blob_client(container=container, blob=blob_name)
          blob_client.upload_blob(
               content,
               overwrite=True,
               content_settings=ContentSettings(content_type=content_type),
          )
     except AzureError as e:
          raise DependencyFailure(f"Upload of {blob_name} failed: {e}") from e
     return f"https://{config.AZURE_STORAGE_ACCOUNT}.blob.core.windows.net/{container}/{blob_name}"
