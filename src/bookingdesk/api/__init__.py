"""HTTP surface."""

from bookingdesk.api.server import create_app

__all__ = ["create_app"]
