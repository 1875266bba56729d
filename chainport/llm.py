# chainport/llm.py
from langchain_openai import ChatOpenAI
from langchain_anthropic import ChatAnthropic
from langchain_google_genai import ChatGoogleGenerativeAI
import logging

logger = logging.getLogger(__name__)

# Models accepted by the design-time step tester
COMPATIBLE_MODELS = [
    "gpt-4o", "gpt-4o-mini",
    "gpt-4-turbo", "gpt-4-turbo-preview", "gpt-4", "gpt-4-32k",
    "gpt-4-0125-preview", "gpt-4-1106-preview", "gpt-4-0613", "gpt-4-0314",
    "gpt-3.5-turbo", "gpt-3.5-turbo-16k", "gpt-3.5-turbo-0125",
    "gpt-3.5-turbo-1106", "gpt-3.5-turbo-0613", "gpt-3.5-turbo-0301",
    "gpt-3.5-turbo-instruct", "gpt-3.5-turbo-instruct-0914",
    "claude-3-5-sonnet-20241022", "claude-3-opus-20240229",
    "gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-pro",
]


def extract_content(message) -> str:
    """
    Extract text content from a message, handling different formats.

    Gemini and other models may return content as:
    - A simple string
    - A list of content blocks with 'text' field
    """
    content = getattr(message, "content", None)
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    elif isinstance(content, list):
        text_parts = []
        for block in content:
            if isinstance(block, dict) and "text" in block:
                text_parts.append(block["text"])
            elif isinstance(block, str):
                text_parts.append(block)
        return "".join(text_parts)
    else:
        return str(content)


def get_llm(model_name: str, api_key: str, temperature: float = 0.2, max_tokens: int = 1000):
    """
    Factory function to get a chat model bound to a specific API key.

    Args:
        model_name: Name of the model (e.g., "gpt-3.5-turbo", "claude-3-5-sonnet-20241022", "gemini-2.5-flash")
        api_key: Credential the call is billed to. Compiled chains pass their own key.
        temperature: Temperature setting for the model (0-1)
        max_tokens: Upper bound on the completion length

    Returns:
        A LangChain chat model instance
    """
    name = model_name.lower()

    if "gpt" in name or "o1" in name:
        return ChatOpenAI(
            model=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key,
            max_retries=0,
        )
    elif "claude" in name:
        return ChatAnthropic(
            model=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key,
            max_retries=0,
        )
    elif "gemini" in name:
        return ChatGoogleGenerativeAI(
            model=model_name,
            temperature=temperature,
            max_output_tokens=max_tokens,
            google_api_key=api_key,
            max_retries=0,
        )
    else:
        logger.warning("Model '%s' not recognized, defaulting to gpt-3.5-turbo", model_name)
        return ChatOpenAI(
            model="gpt-3.5-turbo",
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key,
            max_retries=0,
        )
