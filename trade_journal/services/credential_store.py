from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select
from starlette.concurrency import run_in_threadpool
import bcrypt
import logging
from ..models.user import User
from ..errors import AuthFailure, Conflict, NotFound
from ..logging_config import get_audit_logger

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


# Helper functions
def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    # Bcrypt has a 72-byte limit, anything longer can never match
    if len(plain_password.encode('utf-8')) > 72:
        return False

    try:
        # Convert hash back to bytes if it's a string
        if isinstance(hashed_password, str):
            hashed_password = hashed_password.encode('utf-8')

        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password)
    except ValueError as e:
        logger.error(f"Password verification error: {e}")
        return False


class CredentialStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, username: str, email: str, password: str) -> int:
        """
        Create a user and return its id.

        The unique constraints on ``users.username`` and ``users.email`` are
        the only uniqueness check, so two concurrent registrations for the
        same name cannot both succeed.
        """
        password_hash = await run_in_threadpool(hash_password, password)
        user = User(username=username, email=email, password_hash=password_hash)
        self.db.add(user)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            audit_logger.info(f"REGISTER_CONFLICT | username={username} | email={email}")
            raise Conflict()

        await self.db.refresh(user)
        audit_logger.info(f"REGISTER | user_id={user.id} | username={user.username}")
        return user.id

    async def verify(self, email: str, password: str) -> User:
        query = select(User).where(User.email == email)
        result = await self.db.execute(query)
        user = result.scalar_one_or_none()

        if user is None or not await run_in_threadpool(verify_password, password, user.password_hash):
            audit_logger.info(f"LOGIN_FAILED | email={email}")
            raise AuthFailure()

        audit_logger.info(f"LOGIN | user_id={user.id} | username={user.username}")
        return user

    async def get(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user
