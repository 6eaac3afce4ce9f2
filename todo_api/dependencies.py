import uuid
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError
from todo_api.database import get_db
from todo_api.config import settings
from todo_api.models.user import User as UserModel
from todo_api.schemas.user import TokenData
from todo_api.storage.blob_store import BlobStore, LocalBlobStore
from todo_api.utils.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


@lru_cache
def get_blob_store() -> BlobStore:
    return LocalBlobStore(settings.STORAGE_DIR, settings.STORAGE_PREFIX)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> UserModel:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        token_data = TokenData(user_id=uuid.UUID(subject))
    except (JWTError, ValueError):
        raise credentials_exception

    user = await db.get(UserModel, token_data.user_id)
    # Inactive accounts keep their data but can no longer act.
    if user is None or not user.is_active:
        raise credentials_exception
    return user
