from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from sportreel.core.database import get_db
from sportreel.core.errors import AuthenticationError
from sportreel.models.user import User
from sportreel.services.auth import get_session_user
from sportreel.services.aws import S3Client, s3_client

bearer_scheme = HTTPBearer(auto_error=False)


def get_storage() -> S3Client:
    return s3_client


def get_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return credentials.credentials


def get_current_user(token: str = Depends(get_token), db: Session = Depends(get_db)) -> User:
    return get_session_user(db, token)
