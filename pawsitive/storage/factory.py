"""
Gateway Factory - Creates the configured document gateway.
"""

from typing import Any

from ..core.errors import ConfigurationMissingError
from .interface import DocumentGateway
from .local_gateway import LocalFileGateway
from .memory_gateway import InMemoryGateway


def create_gateway(config: Any) -> DocumentGateway:
    """
    Create a document gateway from settings.

    Args:
        config: Settings object (storage_type, local_storage_path, firebase_* fields)

    Returns:
        DocumentGateway instance; call ``await gateway.init()`` before use

    Raises:
        ConfigurationMissingError: If Firestore is selected without credentials
        ValueError: If storage_type is unknown
    """
    storage_type = config.storage_type.lower()

    if storage_type == "memory":
        return InMemoryGateway()

    elif storage_type == "local":
        return LocalFileGateway(config.local_storage_path)

    elif storage_type == "firestore":
        if not config.firebase_credentials_path:
            raise ConfigurationMissingError(
                "Firebase configuration missing. Set FIREBASE_CREDENTIALS_PATH."
            )
        from .firestore_gateway import FirestoreGateway
        return FirestoreGateway(
            credentials_path=config.firebase_credentials_path,
            project_id=config.firebase_project_id,
            database=config.firestore_database,
            collection=config.firestore_collection,
        )

    else:
        raise ValueError(f"Unsupported storage type: {config.storage_type}")
