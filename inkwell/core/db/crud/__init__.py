from inkwell.core.db.crud.base import BaseDB
from inkwell.core.db.crud.user import AccountDB, UserDB

user_db = UserDB()
account_db = AccountDB()

__all__ = ["BaseDB", "AccountDB", "UserDB", "user_db", "account_db"]
