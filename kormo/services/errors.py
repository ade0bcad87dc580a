class AIServiceError(Exception):
    """Gemini call failed (network, auth, model error, empty reply)."""


class AIQuotaExhaustedError(AIServiceError):
    """Gemini kept answering 429 / RESOURCE_EXHAUSTED after all retries."""


class AIResponseError(AIServiceError):
    """Gemini answered, but not in the format the prompt asked for."""
