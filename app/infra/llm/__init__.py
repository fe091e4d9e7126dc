from app.infra.llm.openai_client import OpenAIAPIError, OpenAIClient

__all__ = ["OpenAIAPIError", "OpenAIClient"]
