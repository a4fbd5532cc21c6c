"""Hosted backend boundary"""

from .protocols import AuthProvider, CurrentUser, MetadataStore, ObjectStorage, UploadSession
from .rest import RestBackend

__all__ = [
    "AuthProvider",
    "CurrentUser",
    "MetadataStore",
    "ObjectStorage",
    "UploadSession",
    "RestBackend",
]
