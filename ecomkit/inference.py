import asyncio
import base64
import io
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

import replicate
from langchain_core.messages import HumanMessage
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import InferenceError, NoImageProducedError
from .models import SourceAsset

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "google/nano-banana"
DEFAULT_TIMEOUT = 120.0
DEFAULT_MAX_ATTEMPTS = 3


class InferenceClient:
    """
    Contract the pipeline expects from the generative-inference service.

    Implementations must finish in bounded time: either return a result or
    raise `InferenceError` (retries, if any, happen in here).
    """

    async def generate_text(self, prompt: str, images: Sequence[SourceAsset] = ()) -> str:
        raise NotImplementedError

    async def generate_image(self, prompt: str, images: Sequence[SourceAsset] = ()) -> bytes:
        raise NotImplementedError


class GenAIClient(InferenceClient):
    """
    Text/vision calls go through a LangChain chat model (`ChatOpenAI` in
    production), image generation through Replicate.

    Build one instance at startup and share it across jobs.
    """

    def __init__(
        self,
        llm: Any,
        image_model: str = DEFAULT_IMAGE_MODEL,
        replicate_client: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff: float = 1.0,
        max_backoff: float = 20.0,
    ) -> None:
        if llm is None:
            raise RuntimeError(
                "GenAIClient.llm is None. Configure a real chat model before "
                "building the client."
            )
        self.llm = llm
        self.image_model = image_model
        self.replicate = replicate_client or replicate
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self.max_backoff = max_backoff

    async def generate_text(self, prompt: str, images: Sequence[SourceAsset] = ()) -> str:
        content = [{"type": "text", "text": prompt}]
        for asset in images:
            content.append({"type": "image_url", "image_url": {"url": to_data_uri(asset)}})
        message = HumanMessage(content=content)

        response = await self._call("text generation", lambda: self.llm.ainvoke([message]))
        return message_text(response)

    async def generate_image(self, prompt: str, images: Sequence[SourceAsset] = ()) -> bytes:
        async def _run() -> bytes:
            # Fresh file handles per attempt; Replicate consumes them on upload.
            inputs = {"prompt": prompt, "output_format": "jpg"}
            if images:
                inputs["image_input"] = [io.BytesIO(asset.data) for asset in images]
            output = await self.replicate.async_run(self.image_model, input=inputs)
            return await first_image_payload(output)

        return await self._call("image generation", _run)

    async def _call(self, label: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=self.max_backoff),
            retry=(
                retry_if_exception_type(Exception)
                & retry_if_not_exception_type(NoImageProducedError)
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await asyncio.wait_for(factory(), timeout=self.timeout)
        except InferenceError:
            raise
        except asyncio.TimeoutError as exc:
            raise InferenceError(f"{label} timed out after {self.timeout}s") from exc
        except Exception as exc:
            raise InferenceError(
                f"{label} failed after {self.max_attempts} attempt(s): {exc}"
            ) from exc


def to_data_uri(asset: SourceAsset) -> str:
    encoded = base64.b64encode(asset.data).decode("ascii")
    return f"data:{asset.media_type};base64,{encoded}"


def message_text(response: Any) -> str:
    """Flatten a chat model response (string or content blocks) to plain text."""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        content = "".join(parts)
    return str(content or "").strip()


async def first_image_payload(output: Any) -> bytes:
    """
    Return the first image payload in a Replicate response.

    Replicate answers with a single file output, a list of them, or raw
    bytes depending on the model; anything else counts as no image.
    """
    items = output if isinstance(output, (list, tuple)) else [output]
    for item in items:
        payload: Optional[bytes] = None
        if isinstance(item, (bytes, bytearray)):
            payload = bytes(item)
        elif hasattr(item, "aread"):
            payload = await item.aread()
        elif hasattr(item, "read"):
            payload = item.read()
        if payload:
            return payload
    raise NoImageProducedError("The image model returned no image payload.")
