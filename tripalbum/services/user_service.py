from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tripalbum.models.user import User
from tripalbum.schemas.auth import UserInfo


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def upsert_from_userinfo(self, user_info: UserInfo) -> tuple[User, bool]:
        """
        Mirror an S-Auth identity into the users table.
        Creates the user if not exists, refreshes email/name otherwise.
        Returns (user, is_new_user).
        """
        user = await self.get_by_id(user_info.sub)

        if user is None:
            user = User(
                id=user_info.sub,
                email=user_info.email,
                name=user_info.display_name,
            )
            self.db.add(user)
            await self.db.flush()
            await self.db.refresh(user)
            return user, True

        user.email = user_info.email
        user.name = user_info.display_name
        await self.db.flush()
        await self.db.refresh(user)
        return user, False
