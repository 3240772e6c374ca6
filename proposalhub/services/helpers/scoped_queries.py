"""
Tenant-scoped query helpers.

Every get-by-id on a tenant-owned model goes through ``get_scoped`` instead
of ``db.session.get(Model, pk)``; a bare primary-key lookup would let one
tenant read another tenant's proposal.

Usage:
    proposal = get_scoped(Proposal, proposal_id, tenant_id=tenant_id)
"""

import logging

from sqlalchemy import select

from proposalhub.core.exceptions import NotFoundError
from proposalhub.models import db

logger = logging.getLogger(__name__)


def get_scoped(model, pk, *, tenant_id):
    """Fetch a single entity by PK, restricted to ``tenant_id``.

    Cross-tenant access is indistinguishable from a missing record: both
    raise NotFoundError (HTTP 404).

    Raises:
        ValueError: If ``tenant_id`` is None or the model has no tenant_id column.
        NotFoundError: If the entity does not exist OR belongs to another tenant.
    """
    if tenant_id is None:
        raise ValueError(
            f"{model.__name__} id={pk} requires a tenant_id scope. "
            "Unscoped lookups bypass tenant isolation."
        )
    if not hasattr(model, "tenant_id"):
        raise ValueError(f"{model.__name__} has no tenant_id column; refusing unscoped lookup.")

    stmt = select(model).where(model.id == pk, model.tenant_id == tenant_id)
    entity = db.session.execute(stmt).scalar_one_or_none()
    if entity is None:
        logger.debug("get_scoped miss: %s id=%s tenant=%s", model.__name__, pk, tenant_id)
        raise NotFoundError(resource=model.__name__, resource_id=pk, tenant_id=tenant_id)
    return entity
