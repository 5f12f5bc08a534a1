# cinema/gemini_image.py
# -*- coding: utf-8 -*-
"""
Gemini image backend (google-genai SDK).

One attempt per request, no retries. Every failure surfaces as a
GenerationError carrying a FailureCode the caller can branch on.
"""
import io
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from cinema.assets import load_asset_bytes
from cinema.data_models import GenerationRequest, ImageAsset
from cinema.env_loader import DEFAULT_IMAGE_MODEL
from cinema.exceptions import FailureCode, GenerationError, StudioError
from cinema.logging_config import get_logger

logger = get_logger("gemini_image")

POLICY_FINISH_REASONS = {"SAFETY", "RECITATION", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}


def supports_image_size(model_name: str) -> bool:
    # imageSize is accepted by the pro image models only; flash models answer 400
    return "pro" in (model_name or "")


def build_config(model_name: str, aspect_ratio: str, quality_tier: str) -> types.GenerateContentConfig:
    image_config = types.ImageConfig(aspect_ratio=aspect_ratio)
    if supports_image_size(model_name) and quality_tier:
        image_config = types.ImageConfig(aspect_ratio=aspect_ratio, image_size=quality_tier)
    return types.GenerateContentConfig(
        response_modalities=["TEXT", "IMAGE"],
        image_config=image_config,
    )


def build_parts(request: GenerationRequest) -> List[types.Part]:
    """Prompt text first, then each reference as label + inline image."""
    parts = [types.Part.from_text(text=request.prompt)]
    for ref in request.references:
        data, mime = load_asset_bytes(ref.asset)
        parts.append(types.Part.from_text(text=ref.label))
        parts.append(types.Part.from_bytes(data=data, mime_type=mime))
    return parts


def classify_api_error(exc: genai_errors.APIError) -> FailureCode:
    code = getattr(exc, "code", None)
    status = str(getattr(exc, "status", "") or "").upper()
    msg = str(exc)
    if code == 403 or status == "PERMISSION_DENIED" or "Requested entity was not found" in msg or "billing" in msg.lower():
        return FailureCode.PERMISSION_DENIED
    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return FailureCode.RATE_LIMITED
    if code == 400 or status == "INVALID_ARGUMENT":
        return FailureCode.BAD_REQUEST
    if isinstance(code, int) and code >= 500:
        return FailureCode.RATE_LIMITED
    return FailureCode.UNKNOWN


def _reason_name(value) -> str:
    if value is None:
        return ""
    return str(getattr(value, "name", value)).upper()


def _first_image_from_parts(parts) -> Optional[Tuple[bytes, str]]:
    """First inline image of a candidate as (bytes, mime_type)."""
    if not parts:
        return None
    for p in parts:
        inline = getattr(p, "inline_data", None)
        if inline and getattr(inline, "data", None):
            return inline.data, inline.mime_type or "image/png"
    return None


def image_from_response(resp) -> ImageAsset:
    """Extract the image or raise GenerationError describing why there is none."""
    feedback = getattr(resp, "prompt_feedback", None)
    block = _reason_name(getattr(feedback, "block_reason", None))
    if block and block != "BLOCK_REASON_UNSPECIFIED":
        raise GenerationError(FailureCode.POLICY_BLOCKED, f"Prompt blocked: {block}")

    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        raise GenerationError(FailureCode.NO_IMAGE_RETURNED, "No candidates from model")

    cand = candidates[0]
    finish = _reason_name(getattr(cand, "finish_reason", None))
    if finish in POLICY_FINISH_REASONS:
        raise GenerationError(FailureCode.POLICY_BLOCKED, f"Generation stopped: {finish}")
    if finish and finish not in ("STOP", "FINISH_REASON_UNSPECIFIED"):
        raise GenerationError(FailureCode.UNKNOWN, f"Generation interrupted: {finish}")

    content = getattr(cand, "content", None)
    found = _first_image_from_parts(getattr(content, "parts", None))
    if found is None:
        raise GenerationError(FailureCode.NO_IMAGE_RETURNED, "No image data in response")
    data, mime = found
    try:
        Image.open(io.BytesIO(data)).verify()
    except (UnidentifiedImageError, OSError) as e:
        raise GenerationError(FailureCode.NO_IMAGE_RETURNED, f"Response image is not decodable: {e}") from e
    return ImageAsset.from_bytes(data, mime_type=mime)


class GeminiImageClient:
    """ImageGenerator backed by google-genai's async client."""

    def __init__(self, api_key: str = "", model_name: str = DEFAULT_IMAGE_MODEL, client: Optional[genai.Client] = None):
        self.model_name = model_name or DEFAULT_IMAGE_MODEL
        # Without an explicit key the SDK reads GEMINI_API_KEY / GOOGLE_API_KEY itself
        self.client = client or (genai.Client(api_key=api_key) if api_key else genai.Client())

    async def generate(self, request: GenerationRequest) -> ImageAsset:
        try:
            parts = build_parts(request)
        except StudioError as e:
            logger.error(f"Reference image unavailable | group={request.group_index} | {e}")
            raise GenerationError(FailureCode.BAD_REQUEST, str(e), {"model": self.model_name, **e.details}) from e
        config = build_config(self.model_name, request.aspect_ratio, request.quality_tier)
        logger.info(
            f"Generating image | model={self.model_name} | group={request.group_index} | refs={len(request.references)}"
        )
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=[types.Content(role="user", parts=parts)],
                config=config,
            )
        except genai_errors.APIError as e:
            code = classify_api_error(e)
            logger.error(f"Gemini image error | code={code.value} | {e}")
            raise GenerationError(code, str(e), {"model": self.model_name, "http_code": getattr(e, "code", None)}) from e
        except Exception as e:
            logger.error(f"Gemini image transport error: {e}")
            raise GenerationError(FailureCode.UNKNOWN, str(e), {"model": self.model_name}) from e

        asset = image_from_response(resp)
        logger.info(f"Image ready | group={request.group_index} | ref={asset.ref}")
        return asset
