# accessforge/api/dependencies.py
from fastapi import HTTPException, Request, status

from accessforge.rules.engine import RulesEngine


def get_rules_engine(request: Request) -> RulesEngine:
    """Shared rules engine created at application startup"""
    engine = getattr(request.app.state, "rules_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rules engine not initialized",
        )
    return engine
