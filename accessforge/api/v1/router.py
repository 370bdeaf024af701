from fastapi import APIRouter
from accessforge.api.v1 import analyses, rules

api_router = APIRouter()

api_router.include_router(analyses.router, prefix="/analyses", tags=["analyses"])
api_router.include_router(rules.router, prefix="/rules", tags=["rules"])
