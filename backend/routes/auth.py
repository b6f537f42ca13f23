# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas import user as schemas
from schemas.common import ApiResponse, ok
from utils.audit import write_log
from utils.hashing import verify_password
from utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(tags=["Auth"])


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    normalized_email = payload.email.strip().lower()
    db_user = db.query(User).filter(func.lower(User.email) == normalized_email).first()
    ip = request.client.host if request.client else None

    # Validate credentials and log failure on error
    if not db_user or not db_user.active or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=ip, meta={"email": payload.email})
        db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    # Generate access token
    access_token = create_access_token(data={"sub": db_user.email, "role": db_user.role.value})

    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth", status="SUCCESS", ip=ip,
              meta={"email": db_user.email})
    db.commit()

    return {"access_token": access_token, "token_type": "bearer"}


# Retrieve current authenticated user details
@router.get("/me", response_model=ApiResponse[schemas.UserResponse])
def me(current_user: User = Depends(get_current_user)):
    return ok(schemas.UserResponse.model_validate(current_user))
