# accessforge/api/v1/rules.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from accessforge.api.dependencies import get_rules_engine
from accessforge.rules.catalogue import CATALOGUE_VERSION, STANDARDS_VERSION
from accessforge.rules.engine import RulesEngine

router = APIRouter()


@router.get("/")
async def list_rules(
    standard: Optional[str] = None,
    engine: RulesEngine = Depends(get_rules_engine),
) -> Dict[str, Any]:
    """List catalogue rules, optionally for one standard"""
    if standard is not None and standard not in engine.catalogue:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "unknown_standard",
                "message": f"No rules for standard '{standard}'",
                "standards": sorted(engine.catalogue),
            },
        )

    rules: List[Dict[str, Any]] = [rule.model_dump(mode="json") for rule in engine.rules_for(standard)]
    return {
        "catalogue_version": CATALOGUE_VERSION,
        "standards_version": STANDARDS_VERSION,
        "total": len(rules),
        "rules": rules,
    }


@router.get("/cache")
async def cache_stats(engine: RulesEngine = Depends(get_rules_engine)) -> Dict[str, Any]:
    """Rule evaluation cache statistics"""
    return engine.cache_stats()


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(engine: RulesEngine = Depends(get_rules_engine)) -> None:
    """Drop every cached rule evaluation"""
    engine.clear_cache()
