from inkwell.core.db.models.base import BaseModel
from inkwell.core.db.models.user import Account, User

__all__ = ["Account", "BaseModel", "User"]
