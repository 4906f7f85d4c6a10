"""Gemini generative-text integration.

Public API:
    - GeminiClient: Async HTTP client for the generateContent endpoint
    - create_gemini_client: Factory function to create the client
    - BudgetDraftParser: Model-by-model budget prompting and response parsing
"""
from money_map.services.gemini.budget_parser import BudgetDraftParser
from money_map.services.gemini.client import GeminiClient, create_gemini_client
from money_map.services.gemini.schemas import GenerateContentRequest, GenerationResult

__all__ = [
    "BudgetDraftParser",
    "GeminiClient",
    "create_gemini_client",
    "GenerateContentRequest",
    "GenerationResult",
]
