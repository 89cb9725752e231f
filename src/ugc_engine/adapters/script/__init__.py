"""Script generation adapters."""

from ugc_engine.adapters.script.base import ScriptProvider
from ugc_engine.adapters.script.openai import OpenAIScriptProvider
from ugc_engine.adapters.script.stub import StubScriptProvider

__all__ = [
    "OpenAIScriptProvider",
    "ScriptProvider",
    "StubScriptProvider",
]
