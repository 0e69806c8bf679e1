"""
Database dependencies.
"""

from fastapi import Request

from clubaccess.core.uow import UnitOfWorkFactory


def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    """Unit-of-work factory configured on the application."""
    return request.app.state.uow_factory
