"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler
(``core.domain.exception_handler``) maps them to HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception    │ Meaning                      │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ generic business-rule breach │ 400  │
│ InsufficientFunds   │ wallet cannot cover deposit  │ 400  │
│ PermissionDenied    │ forbidden (role / ownership) │ 403  │
│ NotFound            │ case or actor absent         │ 404  │
│ Conflict            │ state conflict               │ 409  │
│ InvalidTransition   │ not the expected successor   │ 409  │
│ AlreadyProcessed    │ double-refund guard (internal)│ 409 │
└─────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if requested != expected:
        raise InvalidTransition(current=case.status, target=requested)
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The acting identity lacks the capability required for the operation,
    or is not the actor bound to the case (e.g. a carrier that is not the
    assigned carrier).

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting actor).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate creation attempt, optimistic-lock failure,
    unavailable carrier.  Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    The requested next state is not the successor the engine computes
    from the case's current state.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="org_accepted",
            target="facility_escalated",
        )
        # -> "Case is in state 'org_accepted', cannot apply 'facility_escalated'."
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            if current and target:
                message = f"Case is in state '{current}', cannot apply '{target}'"
            else:
                message = "Invalid state transition"
            if reason:
                message += f": {reason}"
            message += "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class InsufficientFunds(DomainError):
    """
    The reporter's wallet balance does not cover the rescue deposit.

    Maps to HTTP 400.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        required: int | None = None,
        available: int | None = None,
    ) -> None:
        if message is None:
            message = "Insufficient wallet balance"
            if required is not None:
                message += f": a deposit of {required} is required"
                if available is not None:
                    message += f", available balance is {available}"
            message += "."
        super().__init__(message)
        self.required = required
        self.available = available


class AlreadyProcessed(Conflict):
    """
    A side effect (deposit refund) was already applied.

    Raised internally as a guard against double application.  Callers log
    it; it is never surfaced to the actor as a failure.
    """

    def __init__(self, message: str = "This operation has already been processed.") -> None:
        super().__init__(message)


class PaymentVerificationFailed(DomainError):
    """
    A wallet top-up did not carry a valid payment gateway signature.

    Maps to HTTP 400.  Nothing is credited.
    """

    def __init__(self, message: str = "Payment verification failed. Invalid signature.") -> None:
        super().__init__(message)
