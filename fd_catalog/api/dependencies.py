"""Dependency injection for FastAPI endpoints"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request


@dataclass
class Caller:
    """Authenticated caller identity, as forwarded by the upstream auth layer"""

    user_id: Optional[str]
    role: Optional[str]


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Caller:
    """Caller identity headers; authentication happens before requests reach this service"""
    return Caller(user_id=x_user_id, role=x_user_role)


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    """Catalog writes are restricted to the admin role"""
    if caller.role != "admin":
        raise HTTPException(status_code=403, detail="forbidden")
    return caller
