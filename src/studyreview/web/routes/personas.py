"""Tutor persona lookup."""

from fastapi import APIRouter, HTTPException, status

from studyreview.config.personas import Persona, get_persona, list_personas
from studyreview.web.schemas import PersonaListResponse, PersonaResponse

router = APIRouter(prefix="/api/personas", tags=["personas"])


def _to_response(persona: Persona) -> PersonaResponse:
    return PersonaResponse(
        id=persona.id,
        name=persona.name,
        short_title=persona.short_title,
        default=persona.default,
    )


@router.get("", response_model=PersonaListResponse)
async def personas_index() -> PersonaListResponse:
    items = [_to_response(p) for p in list_personas()]
    return PersonaListResponse(personas=items, count=len(items))


@router.get("/{persona_id}", response_model=PersonaResponse)
async def persona_detail(persona_id: str) -> PersonaResponse:
    """One persona's display name and title."""
    persona = get_persona(persona_id)
    if persona is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, f"Persona '{persona_id}' not found")
    return _to_response(persona)
