"""Tenant resolution for request handlers.

The tenant comes from an upstream scope resolver (API gateway / auth proxy)
that sets the X-Tenant-ID header. Row-level tenant policy is not enforced
here; handlers only pass the tenant through to persistence.
"""

from typing import Annotated

from fastapi import Header

from src.hb_common.errors import TenantRequiredError


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str:
    """FastAPI dependency: the caller's tenant id, stripped and non-empty."""
    tenant_id = (x_tenant_id or "").strip()
    if not tenant_id:
        raise TenantRequiredError()
    return tenant_id
