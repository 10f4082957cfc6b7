"""
Health check endpoints
Used by Render + ops
"""

import logging

from fastapi import APIRouter

from app import db

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger("health")


@router.get("")
def health_check():
    return {"status": "ok"}


@router.get("/db")
def db_health_check():
    try:
        db.test_db_connection()
        return {"database": "healthy"}
    except Exception as e:
        logger.exception("Database health check failed")
        return {"database": "unhealthy", "error": str(e)}
