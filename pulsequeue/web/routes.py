"""
API Routes
==========

Webhook and status endpoints. Results are always rendered as JSON.

Author: PulseQueue Project
License: MIT
"""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from ..errors import ConfigurationError, UnknownInterruptorError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global orchestrator reference (set by app.py)
_orchestrator = None


def set_orchestrator(orchestrator):
    """Set orchestrator instance for routes."""
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator():
    """Get orchestrator instance."""
    if _orchestrator is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return _orchestrator


api_router = APIRouter()


@api_router.get("/status")
def get_status():
    """Pulse driver state, configured interruptors and recent failures."""
    return JSONResponse(content=get_orchestrator().get_status())


@api_router.get("/interruptors")
def list_interruptors():
    orchestrator = get_orchestrator()
    names = orchestrator.registry.names() if orchestrator.registry else []
    return {"interruptors": names}


@api_router.post("/interruptors/{name}/trigger")
def trigger_interruptor(name: str):
    """
    Webhook: fire the named interruptor once.

    A failing interruptor still answers 200; the failure is reported in
    the result body. Unknown names answer 404, an orchestrator that is
    not initialized 503, and an interruptor that cannot be constructed
    500.
    """
    orchestrator = get_orchestrator()
    if orchestrator.registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Orchestrator not initialized"
        )

    try:
        result = orchestrator.trigger(name)
    except UnknownInterruptorError as e:
        logger.warning(f"Webhook trigger rejected: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except ConfigurationError as e:
        logger.error(f"Webhook trigger of '{name}' failed to construct: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    return JSONResponse(content=result.to_dict())
