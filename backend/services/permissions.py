"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  FIELDFORCE - Authorization Policy                                           ║
║                                                                              ║
║  Single decision point for every handler:                                    ║
║  - may this identity perform this operation on this resource kind?           ║
║  - which scope filter MUST be merged into list/read queries?                 ║
║  - which payload fields may this identity write?                             ║
║                                                                              ║
║  Evaluation order (owner-scoped resources):                                  ║
║  1. Admin -> Allow, no scope                                                 ║
║  2. MR    -> list/read scoped to own records, create stamps the owner,       ║
║              update/delete only on own records in a mutable state            ║
║  3. Ownerless (Product) -> read for everyone, write for Admin                ║
║  4. MRRequest -> public create, everything else Admin                        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from fastapi import Depends, HTTPException

logger = logging.getLogger("permissions")


# ════════════════════════════════════════════════════════════════════════
# ROLES / OPERATIONS / RESOURCES
# ════════════════════════════════════════════════════════════════════════

class Role(str, Enum):
    ADMIN = "Admin"
    MR = "MR"
    MANAGER = "Manager"


VALID_ROLES = [r.value for r in Role]


def normalize_role(value: Any) -> Optional[Role]:
    """Case-insensitive role lookup ('admin', 'ADMIN', 'Admin' -> Role.ADMIN)."""
    if not value:
        return None
    lowered = str(value).strip().lower()
    for role in Role:
        if role.value.lower() == lowered:
            return role
    return None


def roles_match(stored: Any, requested: Any) -> bool:
    stored_role = normalize_role(stored)
    return stored_role is not None and stored_role == normalize_role(requested)


class Operation(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ResourceKind(str, Enum):
    USER = "user"
    DOCTOR = "doctor"
    PRODUCT = "product"
    VISIT_REPORT = "visit_report"
    ORDER = "order"
    MR_TARGET = "mr_target"
    MR_PERFORMANCE = "mr_performance"
    PRODUCT_ACTIVITY = "product_activity"
    MR_REQUEST = "mr_request"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    CONFLICT = "Conflict"
    ALREADY_PROCESSED = "AlreadyProcessed"


DENY_STATUS_CODES = {
    DenyReason.UNAUTHENTICATED: 401,
    DenyReason.FORBIDDEN: 403,
    DenyReason.NOT_FOUND: 404,
    DenyReason.INVALID_STATE: 400,
    DenyReason.CONFLICT: 400,
    DenyReason.ALREADY_PROCESSED: 400,
}


# ════════════════════════════════════════════════════════════════════════
# IDENTITY
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Identity:
    """
    Normalized caller. Built once at the authentication gate; nothing
    downstream reads raw user documents for role or territory.
    """
    id: str
    role: Optional[Role]
    name: str = ""
    email: str = ""
    is_active: bool = True
    employee_id: Optional[str] = None
    territory: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    reporting_manager: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_mr(self) -> bool:
        return self.role == Role.MR

    @classmethod
    def from_document(cls, doc: dict) -> "Identity":
        """
        Resolves both stored shapes of a user:
        flat (role, name, territory) and legacy nested
        (workInfo.role, personalInfo.name, workInfo.territory).
        """
        work = doc.get("workInfo") or {}
        personal = doc.get("personalInfo") or {}
        return cls(
            id=doc["id"],
            role=normalize_role(doc.get("role") or work.get("role")),
            name=doc.get("name") or personal.get("name") or "",
            email=doc.get("email") or personal.get("email") or "",
            is_active=bool(doc.get("isActive", doc.get("is_active", True))),
            employee_id=doc.get("employeeId"),
            territory=doc.get("territory") or work.get("territory"),
            region=doc.get("region") or work.get("region"),
            city=doc.get("city") or work.get("city"),
            reporting_manager=doc.get("reportingManager") or work.get("reportingManager"),
        )

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "employeeId": self.employee_id,
            "territory": self.territory,
            "region": self.region,
            "city": self.city,
        }


# ════════════════════════════════════════════════════════════════════════
# DECISION
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Decision:
    allowed: bool
    scope: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[DenyReason] = None
    message: str = ""

    @classmethod
    def allow(cls, scope: Optional[Dict[str, Any]] = None) -> "Decision":
        return cls(allowed=True, scope=dict(scope or {}))

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)


# ════════════════════════════════════════════════════════════════════════
# RESOURCE POLICIES
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ResourcePolicy:
    label: str
    owner_field: Optional[str] = None
    owner_is_list: bool = False
    state_field: Optional[str] = None
    # states in which the owner may still update / delete the record
    owner_mutable_states: FrozenSet[str] = frozenset()
    # state values only an Admin may write
    admin_only_states: FrozenSet[str] = frozenset()
    admin_only_fields: FrozenSet[str] = frozenset()
    # when set, non-admins may write nothing outside this set
    owner_writable_fields: Optional[FrozenSet[str]] = None
    admin_only_operations: FrozenSet[Operation] = frozenset()
    public_operations: FrozenSet[Operation] = frozenset()
    admin_only: bool = False


VISIT_MUTABLE_STATES = frozenset({"Draft", "Submitted"})
VISIT_TERMINAL_STATES = frozenset({"Approved", "Rejected"})
ORDER_MUTABLE_STATES = frozenset({"Pending", "Confirmed"})

_WRITES = frozenset({Operation.CREATE, Operation.UPDATE, Operation.DELETE})

POLICIES: Dict[ResourceKind, ResourcePolicy] = {
    ResourceKind.USER: ResourcePolicy(
        label="user",
        owner_field="id",
        owner_writable_fields=frozenset({"phone"}),
        admin_only_operations=frozenset({Operation.LIST, Operation.CREATE, Operation.DELETE}),
    ),
    ResourceKind.DOCTOR: ResourcePolicy(
        label="doctor",
        owner_field="assignedMRs",
        owner_is_list=True,
        admin_only_fields=frozenset({"assignedMRs", "isActive", "srNo"}),
        admin_only_operations=frozenset({Operation.DELETE}),
    ),
    ResourceKind.PRODUCT: ResourcePolicy(
        label="product",
        admin_only_fields=frozenset({"productId", "isActive", "isDiscontinued"}),
        admin_only_operations=_WRITES,
    ),
    ResourceKind.VISIT_REPORT: ResourcePolicy(
        label="visit report",
        owner_field="mr",
        state_field="status",
        owner_mutable_states=VISIT_MUTABLE_STATES,
        admin_only_states=VISIT_TERMINAL_STATES,
        admin_only_fields=frozenset({"mr", "visitId", "approvedBy", "approvedAt", "rejectionReason"}),
    ),
    ResourceKind.ORDER: ResourcePolicy(
        label="order",
        owner_field="mr",
        state_field="status",
        owner_mutable_states=ORDER_MUTABLE_STATES,
        admin_only_fields=frozenset({"mr", "orderId", "status", "statusHistory", "internalNotes"}),
    ),
    ResourceKind.MR_TARGET: ResourcePolicy(
        label="target",
        owner_field="mr",
        admin_only_fields=frozenset({"mr", "created_by"}),
        admin_only_operations=_WRITES,
    ),
    ResourceKind.MR_PERFORMANCE: ResourcePolicy(
        label="performance log",
        owner_field="mr",
        admin_only_fields=frozenset({"mr", "status", "verified_by", "verified_at"}),
        admin_only_operations=_WRITES,
    ),
    ResourceKind.PRODUCT_ACTIVITY: ResourcePolicy(
        label="activity",
        owner_field="mr",
        admin_only_fields=frozenset({"mr"}),
        admin_only_operations=frozenset({Operation.UPDATE, Operation.DELETE}),
    ),
    ResourceKind.MR_REQUEST: ResourcePolicy(
        label="MR request",
        admin_only=True,
        public_operations=frozenset({Operation.CREATE}),
    ),
}


def owner_scope(policy: ResourcePolicy, identity: Identity) -> Dict[str, Any]:
    """Mongo predicate 'owned by identity'. Array owner fields match on membership."""
    return {policy.owner_field: identity.id}


def is_owner(policy: ResourcePolicy, identity: Identity, resource: dict) -> bool:
    value = resource.get(policy.owner_field)
    if policy.owner_is_list:
        return identity.id in (value or [])
    return value == identity.id


# ════════════════════════════════════════════════════════════════════════
# AUTHORIZE
# ════════════════════════════════════════════════════════════════════════

def authorize(
    identity: Optional[Identity],
    kind: ResourceKind,
    operation: Operation,
    resource: Optional[dict] = None,
) -> Decision:
    """
    Decide whether `identity` may perform `operation` on `kind`.

    `resource` is the stored record for read/update/delete on a single
    document; when it is omitted the returned scope must be applied to the
    store lookup instead.
    """
    policy = POLICIES[kind]

    if operation in policy.public_operations:
        return Decision.allow()

    if identity is None:
        return Decision.deny(DenyReason.UNAUTHENTICATED, "Authentication required")

    # Rule 1: Admin
    if identity.is_admin:
        return Decision.allow()

    if policy.admin_only or operation in policy.admin_only_operations:
        return Decision.deny(
            DenyReason.FORBIDDEN,
            f"Access denied. Admin role required to {operation.value} {policy.label}s",
        )

    # Rule 3: ownerless resources, reads are open to any identity
    if policy.owner_field is None:
        if operation in (Operation.LIST, Operation.READ):
            return Decision.allow()
        return Decision.deny(DenyReason.FORBIDDEN, f"Access denied. Only Admin can modify {policy.label}s")

    # Rule 2: MR (every identity may still reach its own user profile)
    if not identity.is_mr and kind != ResourceKind.USER:
        return Decision.deny(DenyReason.FORBIDDEN, "Access denied. Required roles: Admin, MR")

    scope = owner_scope(policy, identity)

    if operation == Operation.LIST:
        return Decision.allow(scope)

    if operation == Operation.CREATE:
        return Decision.allow()

    if resource is None:
        return Decision.allow(scope)

    if not is_owner(policy, identity, resource):
        return Decision.deny(
            DenyReason.FORBIDDEN,
            f"Access denied. You can only {operation.value} your own {policy.label}s",
        )

    if operation in (Operation.UPDATE, Operation.DELETE) and policy.owner_mutable_states:
        state = resource.get(policy.state_field)
        if state not in policy.owner_mutable_states:
            return Decision.deny(
                DenyReason.INVALID_STATE,
                f"Cannot {operation.value} a {policy.label} with status {state}",
            )

    return Decision.allow(scope)


def enforce(decision: Decision) -> Dict[str, Any]:
    """Raise the HTTP error of a Deny; return the scope of an Allow."""
    if decision.allowed:
        return decision.scope
    logger.warning(f"[PERMISSION_DENIED] reason={decision.reason.value} message={decision.message}")
    raise HTTPException(status_code=DENY_STATUS_CODES[decision.reason], detail=decision.message)


# ════════════════════════════════════════════════════════════════════════
# PAYLOAD SHAPING
# ════════════════════════════════════════════════════════════════════════

def sanitize_payload(identity: Identity, kind: ResourceKind, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Silently drop fields a non-admin may not write: admin-only fields,
    admin-only state values, anything outside an explicit writable set.
    """
    if identity.is_admin:
        return dict(payload)

    policy = POLICIES[kind]
    cleaned = {}
    dropped = []
    for key, value in payload.items():
        if policy.owner_writable_fields is not None and key not in policy.owner_writable_fields:
            dropped.append(key)
        elif key in policy.admin_only_fields:
            dropped.append(key)
        elif key == policy.state_field and value in policy.admin_only_states:
            dropped.append(key)
        else:
            cleaned[key] = value

    if dropped:
        logger.info(f"[FIELDS_DROPPED] user={identity.id} kind={kind.value} fields={dropped}")
    return cleaned


def force_owner(identity: Identity, kind: ResourceKind, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Stamp the owner field of a new record. Non-admin callers always own
    what they create, whatever the payload claims.
    """
    policy = POLICIES[kind]
    doc = dict(payload)
    if policy.owner_field is None or identity.is_admin:
        return doc
    doc[policy.owner_field] = [identity.id] if policy.owner_is_list else identity.id
    return doc


# ════════════════════════════════════════════════════════════════════════
# FASTAPI DEPENDENCIES
# ════════════════════════════════════════════════════════════════════════

def require_access(kind: ResourceKind, operation: Operation):
    """
    FastAPI dependency factory for operations decided without a stored record.
    Usage: user: Identity = Depends(require_access(ResourceKind.PRODUCT, Operation.CREATE))
    """
    from routes.auth import get_current_user

    async def _check(user: Identity = Depends(get_current_user)):
        enforce(authorize(user, kind, operation))
        return user

    return _check
