"""HTTP interface of the pgweb service."""

from pgweb.api.app import create_app

__all__ = ["create_app"]
