from fastapi import APIRouter

from .plan import plan_router

router = APIRouter()

router.include_router(plan_router, tags=["Plans"])
