"""
Model access for specialists

The core never inspects the model handle; it forwards it to a ModelClient,
whose only job is to send a prompt and return the response text.
"""
from typing import Any, Optional

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from srs_writer.config import GEMINI_API_KEY, AI_MODEL, AI_TEMPERATURE, AI_MAX_RETRIES, AI_REQUEST_TIMEOUT


class LangChainModelClient:
    """Sends prompts to any langchain chat model"""

    async def send_request(self, model: Any, prompt: str) -> str:
        response = await model.ainvoke([HumanMessage(content=prompt)])
        content = response.content
        if isinstance(content, list):
            # Multi-part responses: keep the text parts
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return content


def create_chat_model(api_key: Optional[str] = None, model_name: Optional[str] = None) -> ChatGoogleGenerativeAI:
    """
    Build the default Gemini chat model

    Raises:
        ValueError: If no API key is configured
    """
    api_key = api_key or GEMINI_API_KEY
    if not api_key:
        raise ValueError("GEMINI_API_KEY not found in environment variables")

    return ChatGoogleGenerativeAI(
        google_api_key=api_key,
        model=model_name or AI_MODEL,
        temperature=AI_TEMPERATURE,
        max_retries=AI_MAX_RETRIES,
        request_timeout=AI_REQUEST_TIMEOUT,
        transport="rest",
    )


__all__ = ["LangChainModelClient", "create_chat_model"]
