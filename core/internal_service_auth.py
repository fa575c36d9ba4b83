"""
Internal Service Authentication

Shared-secret headers that let one microservice call another without a
user session. Outgoing clients add the headers; the auth dependencies
recognise them on the receiving side.
"""

from fastapi import Request
import os
import logging

logger = logging.getLogger(__name__)

# Must be overridden in production
INTERNAL_SERVICE_SECRET = os.getenv("INTERNAL_SERVICE_SECRET", "dev-internal-secret-change-in-production")
INTERNAL_SERVICE_HEADER = "X-Internal-Service"
INTERNAL_SERVICE_SECRET_HEADER = "X-Internal-Service-Secret"


class InternalServiceAuth:
    """Internal service authentication helpers"""

    @staticmethod
    def get_internal_service_headers() -> dict:
        """Headers a client attaches to service-to-service requests"""
        return {
            INTERNAL_SERVICE_HEADER: "true",
            INTERNAL_SERVICE_SECRET_HEADER: INTERNAL_SERVICE_SECRET
        }

    @staticmethod
    def is_internal_service_request(request: Request) -> bool:
        """
        Check whether a request comes from another internal service.

        Both the marker header and the correct shared secret are required.
        """
        internal_service = request.headers.get(INTERNAL_SERVICE_HEADER)
        secret = request.headers.get(INTERNAL_SERVICE_SECRET_HEADER)

        if internal_service == "true" and secret == INTERNAL_SERVICE_SECRET:
            logger.debug("Valid internal service request detected")
            return True

        if internal_service == "true":
            client_host = request.client.host if request.client else "unknown"
            logger.warning(f"Invalid internal service secret from {client_host}")

        return False

    @staticmethod
    def get_service_user_id() -> str:
        """user_id recorded for calls made by internal services"""
        return "internal-service"


__all__ = [
    "InternalServiceAuth",
    "INTERNAL_SERVICE_HEADER",
    "INTERNAL_SERVICE_SECRET_HEADER"
]
