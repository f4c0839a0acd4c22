import asyncio
from functools import lru_cache

from langchain_groq import ChatGroq
from pydantic import BaseModel, ValidationError

from config import GROQ_API_KEY, LLM_MODEL, LLM_TIMEOUT_SECONDS
from exceptions import ExternalServiceError
from logging_config import setup_logger

logger = setup_logger("LLM")

@lru_cache(maxsize=1)
def get_llm():
    """
    The chat model shared by all agents. Calls time out and are never retried:
    there is no fallback, so failures go straight back to the user.
    """
    if not GROQ_API_KEY:
        logger.error("GROQ_API_KEY is not set. Form generation and document checks are unavailable.")
        raise ExternalServiceError("The language model is not configured (GROQ_API_KEY is not set).")
    try:
        return ChatGroq(
            model=LLM_MODEL,
            temperature=0,
            api_key=GROQ_API_KEY,
            timeout=LLM_TIMEOUT_SECONDS,
            max_retries=0,
        )
    except Exception as e:
        logger.error(f"Could not create the language model client: {e}", exc_info=True)
        raise ExternalServiceError(f"The language model could not be initialised: {e}") from e


class LazyChain:
    """
    Defers building a chain until it is first invoked, so a missing or broken
    model configuration fails the call instead of the request wiring.
    """

    def __init__(self, factory):
        self.factory = factory
        self._chain = None

    async def ainvoke(self, inputs: dict):
        if self._chain is None:
            self._chain = self.factory()
        return await self._chain.ainvoke(inputs)

async def invoke_structured(chain, inputs: dict, output_model, what: str, timeout: float = LLM_TIMEOUT_SECONDS):
    """
    Runs a structured-output chain and returns a validated ``output_model``.
    Every failure mode (backend error, timeout, schema mismatch) becomes
    ExternalServiceError.
    """
    try:
        result = await asyncio.wait_for(chain.ainvoke(inputs), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{what} timed out after {timeout}s")
        raise ExternalServiceError(f"{what} timed out.") from e
    except ExternalServiceError:
        raise
    except Exception as e:
        logger.error(f"{what} failed: {e}", exc_info=True)
        raise ExternalServiceError(f"{what} failed: {e}") from e

    if result is None:
        raise ExternalServiceError(f"{what} returned no output.")
    try:
        if isinstance(result, BaseModel):
            result = result.model_dump(by_alias=True)
        return output_model.model_validate(result)
    except ValidationError as e:
        logger.error(f"{what} returned invalid output: {e}")
        raise ExternalServiceError(f"{what} returned output that failed validation.") from e
