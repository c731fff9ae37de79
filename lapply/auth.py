import logging

import firebase_admin
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from sqlalchemy.orm import Session

from .config import ADMIN_EMAILS, FIREBASE_PROJECT_ID
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()


def ensure_firebase_initialized() -> None:
    """Initialize Firebase Admin SDK (only once)"""
    try:
        firebase_admin.get_app()
    except ValueError:
        try:
            cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception:
            # Token verification only needs the project ID
            firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with project ID only")


def verify_firebase_token(token: str) -> dict:
    """Verify a Firebase ID token and return its decoded claims"""
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    ensure_firebase_initialized()
    try:
        return firebase_auth.verify_id_token(token)
    except firebase_auth.ExpiredIdTokenError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except (firebase_auth.InvalidIdTokenError, ValueError) as e:
        logger.warning(f"⚠️ Invalid Firebase token: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token") from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current dashboard user from Firebase token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    decoded_token = verify_firebase_token(credentials.credentials)
    firebase_uid = decoded_token.get("uid") or decoded_token.get("sub")
    if not firebase_uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(decoded_token.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
    if not user:
        logger.info(f"🆕 Creating new user: {decoded_token.get('email')}")
        user = User(
            firebase_uid=firebase_uid,
            email=decoded_token.get("email"),
            full_name=decoded_token.get("name"),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

    return user


async def get_current_organization_user(user: User = Depends(get_current_user)) -> User:
    """Current user, required to belong to an organization"""
    if not user.organization_id:
        logger.warning(f"⚠️ User {user.email} has no organization")
        raise HTTPException(status_code=403, detail="Organization required")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only emails listed in ADMIN_EMAILS"""
    if not user.email or user.email.lower() not in ADMIN_EMAILS:
        logger.warning(f"⚠️ Non-admin {user.email} attempted to access admin endpoint")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
