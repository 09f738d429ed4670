from inkwell.core.db.crud.base import BaseDB
from inkwell.core.db.models import Account, User


class UserDB(BaseDB[User]):
    def __init__(self):
        super().__init__(model=User)


class AccountDB(BaseDB[Account]):
    def __init__(self):
        super().__init__(model=Account)
