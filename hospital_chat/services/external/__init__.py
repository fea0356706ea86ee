"""
External service clients.
"""

from .whatsapp import WhatsAppCloudClient

__all__ = ["WhatsAppCloudClient"]
