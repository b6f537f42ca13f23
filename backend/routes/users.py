# backend/routes/users.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db, transaction
from models.users import User, Role
from schemas.common import ApiResponse, ok
from schemas.user import UserCreate, UserResponse
from utils.audit import write_log
from utils.hashing import get_password_hash
from utils.tokenJWT import role_required

router = APIRouter(prefix="/users", tags=["Users"])


# Create an account (Admin only)
@router.post("", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(Role.ADMIN)),
):
    normalized_email = payload.email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == normalized_email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    with transaction(db):
        user = User(
            name=payload.name,
            email=normalized_email,
            password_hash=get_password_hash(payload.password),
            role=payload.role,
            department=payload.department,
            phone=payload.phone,
        )
        db.add(user)
        db.flush()
        write_log(db, user_id=current_user.id, action="USER_CREATE", resource="users", entity_id=user.id,
                  meta={"role": user.role.value})

    return ok(UserResponse.model_validate(user), "User created")
