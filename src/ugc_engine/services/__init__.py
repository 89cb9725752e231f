"""Business logic services."""

from ugc_engine.services.cost_ledger import CostLedger
from ugc_engine.services.generation import GenerationService
from ugc_engine.services.lineage import LineageTracker
from ugc_engine.services.orchestrator import StageDriver
from ugc_engine.services.retry import RetryPolicy
from ugc_engine.services.store import GenerationStore

__all__ = [
    "CostLedger",
    "GenerationService",
    "GenerationStore",
    "LineageTracker",
    "RetryPolicy",
    "StageDriver",
]
