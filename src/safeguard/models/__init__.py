"""
SQLAlchemy models for the Safeguard70E compliance tracker
"""

from .assets import Asset, STICKY_STATUSES
from .certification_documents import CertificationDocument

__all__ = [
    "Asset",
    "CertificationDocument",
    "STICKY_STATUSES",
]
