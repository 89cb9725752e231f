"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends

from ugc_engine.services.generation import GenerationService


def get_generation_service() -> GenerationService:
    """Get the generation service instance."""
    return GenerationService()


GenerationServiceDep = Annotated[GenerationService, Depends(get_generation_service)]
