"""
Request context using contextvars.

Feeds log correlation only. Authorization never reads from here: the
validated ``Identity`` is passed explicitly to every handler and service,
and ``bind_identity`` merely copies it into the log context.
"""

import contextvars
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from educore.features.auth.identity import Identity

_CONTEXT_KEYS = ("request_id", "trace_id", "user_id", "tenant_id", "role")

_context_vars: dict[str, contextvars.ContextVar[str | None]] = {
    key: contextvars.ContextVar(key, default=None) for key in _CONTEXT_KEYS
}


def set_request_context(**values: str | None) -> None:
    """Set request context variables; unknown keys are rejected, falsy values skipped."""
    for key, value in values.items():
        if key not in _context_vars:
            raise KeyError(f"Unknown request context key: {key}")
        if value:
            _context_vars[key].set(value)


def bind_identity(identity: "Identity") -> None:
    """Expose the authenticated caller to the log processors."""
    set_request_context(
        user_id=identity.user_id,
        tenant_id=identity.tenant_id,
        role=identity.role.value,
    )


def get_request_context() -> dict[str, Any]:
    """Get all request context as a dictionary."""
    return {key: var.get() for key, var in _context_vars.items()}


def clear_request_context() -> None:
    """Clear all context variables."""
    for var in _context_vars.values():
        var.set(None)
