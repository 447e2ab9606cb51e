"""
API Integration Layer
=====================

Boundary to the remote generation service and the script-parsing model.

Usage:
    from lumina.api import get_provider

    client = get_provider("google", api_key="...")
    handle = await client.submit_image_job("A spaceship cockpit bathed in red light")
    result = await client.poll_job(handle)
"""

from .base import (
    Artifact,
    ArtifactKind,
    GenerationClient,
    GenerationRequest,
    JobHandle,
    ParsedScene,
    PollResult,
    ScriptParser,
)
from .factory import get_provider, get_parser, list_providers, register_provider, register_parser
from .google import GoogleGenerationClient, GeminiScriptParser

__all__ = [
    "Artifact",
    "ArtifactKind",
    "GenerationClient",
    "GenerationRequest",
    "JobHandle",
    "ParsedScene",
    "PollResult",
    "ScriptParser",
    "get_provider",
    "get_parser",
    "list_providers",
    "register_provider",
    "register_parser",
    "GoogleGenerationClient",
    "GeminiScriptParser",
]
