"""System health, formats, categories and phase listing endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from discussion_engine.phases import describe_phases
from formats import format_registry
from web.discussion_manager import DiscussionManager
from web.endpoints.discussions import setup_discussion_manager

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"isAlive": True}


@router.get("/formats")
async def get_formats():
    """Get available discussion formats."""
    return {"formats": format_registry.get_format_descriptions()}


@router.get("/formats/{format_name}")
async def get_format_details(format_name: str):
    """Roles and phase breakdown of one format."""
    try:
        debate_format = format_registry.get_format(format_name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "name": debate_format.name,
        "display_name": debate_format.display_name,
        "description": debate_format.description,
        "mode": debate_format.mode.value,
        "roles": [role.value for role in debate_format.allowed_roles()],
        "phases": [
            {
                **asdict(phase),
                "phase": phase.phase.value,
                "authors": phase.authors.value if phase.authors else None,
            }
            for phase in debate_format.get_phases()
        ],
    }


@router.get("/categories")
async def get_categories(manager: DiscussionManager = Depends(setup_discussion_manager)):
    """Suggested discussion categories."""
    return {"categories": manager.service.config.categories}


@router.get("/phases")
async def get_phases():
    """Phase order of structured debates and who may speak in each."""
    return {"phases": describe_phases()}
