"""
Common dependencies for crudgen API endpoints.

Authentication is handled outside crudgen; the caller's identity arrives in
``X-User-Id`` and ``X-Tenant-Id`` headers set by the fronting auth layer.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions.domain import ConfigurationError
from ..models import Actor
from ..registry import EntityRegistry
from ..services.lifecycle import EntityAdmin
from ..utils.database import get_async_session


async def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> Actor:
    """
    Build the caller identity from request headers.

    Args:
        x_user_id: Identifier of the authenticated user
        x_tenant_id: Tenant the user acts for

    Returns:
        The caller identity; empty header values count as absent
    """
    return Actor(user_id=x_user_id or None, tenant_id=x_tenant_id or None)


async def get_registry(request: Request) -> EntityRegistry:
    """Entity registry attached to the application by ``create_app``."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise ConfigurationError("Application has no entity registry")
    return registry


SessionDep = Annotated[AsyncSession, Depends(get_async_session)]
ActorDep = Annotated[Actor, Depends(get_actor)]
RegistryDep = Annotated[EntityRegistry, Depends(get_registry)]


def admin_dependency(model_name: str) -> Callable[..., Awaitable[EntityAdmin]]:
    """Dependency providing the lifecycle controller of one entity."""

    async def get_admin(registry: RegistryDep, session: SessionDep) -> EntityAdmin:
        return registry.admin(model_name, session)

    return get_admin
