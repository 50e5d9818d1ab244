"""
Organization-scoped access rules for assets and certification documents.

These rules mirror the row policies of the record store so that they hold
regardless of which database backs the service:

- every access requires the resource to belong to the caller's organization
- admins may do anything inside their organization
- members may create assets, and may read, update or upload documents for
  assets assigned to themselves
"""

import logging
from enum import Enum
from typing import Union

from ..models.assets import Asset
from ..models.certification_documents import CertificationDocument
from ..schemas.auth import Caller
from ..utils.errors import AuthorizationError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TRANSITION = "transition"
    UPLOAD = "upload"


MEMBER_ASSIGNED_ACTIONS = frozenset({Action.READ, Action.UPDATE, Action.UPLOAD})

Resource = Union[Asset, CertificationDocument]


class AuthorizationPolicy:
    """Single gate consulted before every record store call"""

    def can_access(self, caller: Caller, resource: Resource, action: Action) -> bool:
        if isinstance(resource, CertificationDocument):
            # Documents inherit the rules of their parent asset
            if resource.org_id != caller.org_id:
                return False
            if action == Action.READ:
                return resource.asset is not None and self.can_access(caller, resource.asset, Action.READ)
            if action in (Action.CREATE, Action.UPLOAD):
                return resource.asset is not None and self.can_access(caller, resource.asset, Action.UPLOAD)
            # Documents are immutable; only cascades from an admin delete remove them
            return caller.is_admin

        if resource.org_id != caller.org_id:
            return False
        if caller.is_admin:
            return True
        if action == Action.CREATE:
            return True
        if action not in MEMBER_ASSIGNED_ACTIONS:
            return False
        if resource.assigned_user_id is None or resource.assigned_user_id != caller.user_id:
            return False
        if action == Action.UPLOAD and resource.status == "failed":
            # A failed glove is recertified by an admin, not by its holder
            return False
        return True

    def authorize(self, caller: Caller, resource: Resource, action: Action) -> None:
        """Raise AuthorizationError unless the caller may perform ``action``"""
        if not self.can_access(caller, resource, action):
            reason = (
                f"user {caller.user_id} ({caller.role.value}) may not {action.value} "
                f"{type(resource).__name__} {getattr(resource, 'id', None)}"
            )
            logger.info(f"Access denied: {reason}")
            raise AuthorizationError(reason)


default_policy = AuthorizationPolicy()
