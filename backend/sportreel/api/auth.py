import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from sportreel.api.deps import get_current_user, get_token
from sportreel.core.database import get_db
from sportreel.models.user import User
from sportreel.schemas.user import LoginRequest, SessionResponse, SignupRequest, UserResponse
from sportreel.services.auth import authenticate, create_session, create_user, revoke_session

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/auth/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """Create an account and sign it in."""
    user = create_user(db, request.email, request.password, request.confirmPassword)
    token = create_session(db, user)
    return SessionResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/auth/login", response_model=SessionResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, request.email, request.password)
    token = create_session(db, user)
    logger.info(f"User {user.id} signed in")
    return SessionResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(token: str = Depends(get_token), db: Session = Depends(get_db)):
    revoke_session(db, token)
    return None
