"""API route modules."""

from ugc_engine.api.routes import briefs, costs, generations, health, videos

__all__ = ["briefs", "costs", "generations", "health", "videos"]
