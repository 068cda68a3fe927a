# dependencies.py
"""Shared FastAPI dependencies: bearer-token auth and role checks."""
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt

import config

STAFF_ROLES = ("admin", "manager")


# Token Auth Dependency
def verify_token(request: Request) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=401, detail="Missing token")
     token = auth.split(" ")[1]
     try:
          payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
          return payload
     except JWTError:
          raise HTTPException(status_code=403, detail="Invalid token")


def require_staff(token: dict = Depends(verify_token)) -> dict:
     """Only admins and managers may run billing jobs or delete invoices."""
     if token.get("role") not in STAFF_ROLES:
          raise HTTPException(status_code=403, detail="Admin or manager role required")
     return token


def current_user_id(token: dict) -> Optional[int]:
     user_id = token.get("id")
     return int(user_id) if user_id is not None else None
