# routes/admin/__init__.py
"""
Admin module combining the admin account routers.

- accounts: login, own profile, password and permission checks
- management: admin CRUD, navigation permissions, activation and stats

The main app.py adds the /v1/admins prefix.
"""
from fastapi import APIRouter

from .accounts import router as accounts_router
from .management import router as management_router

router = APIRouter()

# accounts first so /profile and /login are not captured by /{admin_id}
router.include_router(accounts_router, tags=["Admins"])
router.include_router(management_router, tags=["Admins"])

__all__ = ["router"]
