from inkwell.core.config import auth_logger
from inkwell.core.exceptions.types import UnknownStrategyException
from inkwell.core.services.auth.outcome import AuthOutcome, AuthRequest, Failure
from inkwell.core.services.auth.strategy import AuthStrategy


__all__ = ["Authenticator"]


class Authenticator:
    """
    Registry of named strategies.

    Example:
        >>> authenticator = Authenticator()
        >>> authenticator.use(totp_strategy)
        >>> outcome = await authenticator.authenticate("totp", request)
    """

    def __init__(self) -> None:
        self._strategies: dict[str, AuthStrategy] = {}

    def use(self, strategy: AuthStrategy, name: str | None = None) -> "Authenticator":
        """Register ``strategy`` under ``name`` (defaults to its own name)."""
        key = name or strategy.name
        if key in self._strategies:
            auth_logger.debug(f"Replacing strategy {key}")
        self._strategies[key] = strategy
        return self

    def unuse(self, name: str) -> "Authenticator":
        self._strategies.pop(name, None)
        return self

    def get(self, name: str) -> AuthStrategy | None:
        return self._strategies.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._strategies)

    async def authenticate(self, name: str, request: AuthRequest) -> AuthOutcome:
        strategy = self._strategies.get(name)
        if strategy is None:
            auth_logger.warning(f"Authentication requested with unknown strategy {name}")
            return Failure(UnknownStrategyException(name))
        return await strategy.authenticate(request)
