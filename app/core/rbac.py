from fastapi import Depends

from app.core.errors import AccessDeniedError
from app.core.security import Caller, get_caller


def assert_role(caller: Caller, *allowed: str, message: str | None = None) -> None:
    if caller.role not in allowed:
        raise AccessDeniedError(
            message or f"Forbidden. Requires one of: {sorted(allowed)}",
            {"required_roles": sorted(allowed)},
        )


def require_roles(*required: str):
    """
    Usage:
      Depends(require_roles("admin"))
      Depends(require_roles("admin", "hr"))  # any-of
    """

    def _dep(caller: Caller = Depends(get_caller)) -> Caller:
        assert_role(caller, *required)
        return caller

    return _dep
