"""
Domain exceptions for AutoLease.

Typed errors let every layer tell apart what went wrong without parsing
messages. Transports translate them into responses in a single place.

Hierarchy:
    DomainException (base)
    ├── ValidationError (malformed or out-of-range input, carries the field)
    ├── InvalidStateError (operation not allowed in the current state)
    ├── EntityNotFoundError (referenced id does not exist)
    ├── ConflictError (uniqueness or concurrent-update collision)
    └── PermissionDeniedError (caller lacks the right to act)
"""


class DomainException(Exception):
    """
    Base class for every domain error.

    Example:
        try:
            application.approve(reviewer_id, now=now)
        except DomainException as e:
            logger.warning(f"Domain error: {e}")
    """

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        """Serialize the error for API payloads."""
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainException):
    """
    Invalid input detected while constructing or mutating an entity.

    The offending field name travels with the error so callers can point
    the user at it.

    Example:
        raise ValidationError("VIN must be exactly 17 characters", field="vin_number")
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class EntityNotFoundError(DomainException):
    """
    A referenced entity does not exist.

    Example:
        offer = offer_repo.get_by_id(offer_id)
        if offer is None:
            raise EntityNotFoundError(
                f"Offer {offer_id} not found",
                entity_type="Offer",
                entity_id=offer_id,
            )
    """

    def __init__(self, message: str, entity_type: str = None, entity_id=None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message, "ENTITY_NOT_FOUND")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id is not None:
            result["entity_id"] = str(self.entity_id)
        return result


class InvalidStateError(DomainException):
    """
    Operation requested on an entity whose state forbids it.

    Approving an application that is no longer pending, or consuming a
    slot on a full or expired offer, both end up here. These are never
    retried automatically.
    """

    def __init__(self, message: str, rule: str = None):
        self.rule = rule
        super().__init__(message, "INVALID_STATE")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.rule:
            result["rule"] = self.rule
        return result


class ConflictError(DomainException):
    """
    Uniqueness or concurrent-update collision.

    Kept apart from InvalidStateError so callers can retry a stale write
    once and fail permanently on a duplicate.

    Reasons used in the code base:
        duplicate_application, stale_version, duplicate_vin,
        duplicate_email, duplicate_user
    """

    STALE_VERSION = "stale_version"

    def __init__(self, message: str, reason: str = None):
        self.reason = reason
        super().__init__(message, "CONFLICT")

    @property
    def is_retryable(self) -> bool:
        """Only a lost optimistic-concurrency race is worth a retry."""
        return self.reason == self.STALE_VERSION

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.reason:
            result["reason"] = self.reason
        return result


class PermissionDeniedError(DomainException):
    """
    The caller is identified but not allowed to perform the operation.

    Raised when a user cancels somebody else's application, or when a
    client reaches an operation reserved for sales agents.
    """

    def __init__(self, message: str, required_role: str = None):
        self.required_role = required_role
        super().__init__(message, "PERMISSION_DENIED")
