"""
Typed Exception Hierarchy for the Costing Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CostingKernelError:

    CostingKernelError (base)
    |
    +-- AuthorizationError
    |   +-- ProjectNotFoundError
    |   +-- ProjectAccessDeniedError
    |
    +-- CostValidationError
    |   +-- MissingReferenceError
    |   +-- InvalidQuantityError
    |   +-- InvalidCostTypeError
    |
    +-- CostEntryNotFoundError
    +-- ReferenceNotFoundError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Authorization   | PROJECT_NOT_FOUND           | Project id does not exist
                | PROJECT_ACCESS_DENIED       | Caller does not own the project
----------------|-----------------------------|-----------------------------------------
Validation      | COST_VALIDATION_ERROR       | Blank description/date, bad field value
                | MISSING_REFERENCE           | No employee/equipment/product given
                | INVALID_QUANTITY            | Quantity or unit price <= 0
                | INVALID_COST_TYPE           | Unknown or store-less cost type
----------------|-----------------------------|-----------------------------------------
Lookup          | COST_ENTRY_NOT_FOUND        | Backing row missing or other project
                | REFERENCE_NOT_FOUND         | Equipment/product missing on create
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Concurrent modification detected

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        service.create(...)
    except MissingReferenceError as e:
        api_response(code=e.code, field=e.field)
    except AuthorizationError:
        api_response(code="FORBIDDEN")

A missing budget baseline is NOT an exception: the budget comparison
returns a tagged "no data" result instead.
"""


class CostingKernelError(Exception):
    """
    Base exception for all costing kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COSTING_KERNEL_ERROR"


# Authorization


class AuthorizationError(CostingKernelError):
    """Base exception for project ownership failures."""

    code: str = "AUTHORIZATION_ERROR"


class ProjectNotFoundError(AuthorizationError):
    """Project with given ID does not exist."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ProjectAccessDeniedError(AuthorizationError):
    """Caller does not own the project."""

    code: str = "PROJECT_ACCESS_DENIED"

    def __init__(self, project_id: str, actor_id: str):
        self.project_id = project_id
        self.actor_id = actor_id
        super().__init__(f"Actor {actor_id} has no access to project {project_id}")


# Validation


class CostValidationError(CostingKernelError):
    """Cost entry input failed validation before any write occurred."""

    code: str = "COST_VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class MissingReferenceError(CostValidationError):
    """A type-specific reference (employee, equipment, product) is missing."""

    code: str = "MISSING_REFERENCE"

    def __init__(self, field: str, cost_type: str):
        self.cost_type = cost_type
        super().__init__(field, f"{field} is required for {cost_type} costs")


class InvalidQuantityError(CostValidationError):
    """A numeric input is zero, negative, or not a number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: object):
        self.value = str(value)
        super().__init__(field, f"{field} must be greater than 0, got {value!r}")


class InvalidCostTypeError(CostValidationError):
    """Cost type discriminant does not map to a backing store."""

    code: str = "INVALID_COST_TYPE"

    def __init__(self, cost_type: object):
        self.cost_type = str(cost_type)
        super().__init__("type", f"Invalid cost type: {cost_type!r}")


# Lookup


class CostEntryNotFoundError(CostingKernelError):
    """Backing row for a cost entry does not exist in the given project."""

    code: str = "COST_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str, cost_type: str, project_id: str):
        self.entry_id = entry_id
        self.cost_type = cost_type
        self.project_id = project_id
        super().__init__(
            f"{cost_type} cost entry {entry_id} not found in project {project_id}"
        )


class ReferenceNotFoundError(CostingKernelError):
    """Equipment or product referenced by a new cost entry does not exist."""

    code: str = "REFERENCE_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Concurrency


class ConcurrencyError(CostingKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )
