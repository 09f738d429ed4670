from typing import Annotated

from fastapi import Depends, Request

from inkwell.core.config import settings
from inkwell.core.services.factory import Services, create_services


async def get_services(request: Request) -> Services:
    """
    Assemble the auth services for this request from the clients on ``app.state``.

    The lifespan stores ``kv``, ``users`` and ``http_client``. Tests may also
    set ``send_code``, ``validate_email`` and ``clock`` to replace delivery,
    validation and time.

    Returns:
        Services: The wired services.
    """
    state = request.app.state
    overrides = {
        name: getattr(state, name)
        for name in ("send_code", "validate_email", "clock")
        if getattr(state, name, None) is not None
    }
    return create_services(
        settings=getattr(state, "settings", settings),
        kv=state.kv,
        users=state.users,
        http_client=getattr(state, "http_client", None),
        **overrides,
    )


ServicesDep = Annotated[Services, Depends(get_services)]


__all__ = ["get_services", "ServicesDep"]
