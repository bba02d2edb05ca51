"""Prompts and request building for listing generation.

Each domain has one user prompt template describing the JSON shape the
quality gate scores. The rules repeated in the prompts are the same ones the
catalogs enforce, so a compliant model response passes on the first attempt.
"""

from __future__ import annotations

import base64
import binascii

from schemas.listings import ListingGenerationRequest
from services.quality_gate.adapters import ListingDomain
from services.quality_gate.catalogs import (
    BANNED_PHRASES,
    DESCRIPTION_SECTIONS,
    LISTING_TAG_COUNT,
    MARKETPLACE_BULLET_COUNT,
)
from services.quality_gate.models import GenerationRequest


SYSTEM_PROMPT = """You are an experienced e-commerce seller and SEO copywriter.
Write listing copy that sounds like a real person describing a real product.
Respond with a single JSON object only: no markdown fences, no commentary."""

# base64 prefixes of common image formats
_IMAGE_SIGNATURES: tuple[tuple[str, str], ...] = (
    ("iVBORw", "image/png"),
    ("/9j/", "image/jpeg"),
    ("R0lGOD", "image/gif"),
    ("UklGR", "image/webp"),
)
DEFAULT_IMAGE_MEDIA_TYPE = "image/jpeg"


def strip_data_url(image_base64: str) -> tuple[str, str | None]:
    """Split an optional ``data:<type>;base64,`` prefix off the payload."""
    value = image_base64.strip()
    if value.startswith("data:") and "," in value:
        header, payload = value.split(",", 1)
        media_type = header[len("data:") :].split(";", 1)[0] or None
        return payload, media_type
    return value, None


def detect_media_type(payload: str) -> str:
    for prefix, media_type in _IMAGE_SIGNATURES:
        if payload.startswith(prefix):
            return media_type
    return DEFAULT_IMAGE_MEDIA_TYPE


def decode_reference_image(image_base64: str) -> tuple[bytes, str]:
    """Decode a base64 image (optionally a data URL) into bytes and media type.

    Raises:
        ValueError: if the payload is not valid base64.
    """
    payload, declared = strip_data_url(image_base64)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("image_base64 is not valid base64 data") from e
    if not data:
        raise ValueError("image_base64 is empty")
    return data, declared or detect_media_type(payload)


def _inputs_block(payload: ListingGenerationRequest) -> str:
    lines = [
        f"- Draft title: {payload.title or 'not provided'}",
        f"- Notes: {payload.description or 'not provided'}",
        f"- Niche/style: {payload.niche or 'not provided'}",
        f"- Material: {payload.material or 'not provided'}",
        f"- Tone: {payload.tone}",
        f"- Personalization: {'enabled' if payload.personalization else 'disabled'}",
    ]
    if payload.shop_context:
        lines.append(f"- Shop context: {payload.shop_context}")
    if payload.category:
        lines.append(f"- Category: {payload.category}")
    if payload.product_type:
        lines.append(f"- Product type: {payload.product_type}")
    if payload.additional_context:
        lines.append(f"- Additional context: {payload.additional_context}")
    return "\n".join(lines)


def _banned_line() -> str:
    return "Never use these phrases: " + ", ".join(f'"{p}"' for p in BANNED_PHRASES)


def _general_prompt(payload: ListingGenerationRequest, *, digital: bool) -> str:
    sections = "\n".join(f"  {s}:" for s in DESCRIPTION_SECTIONS)
    digital_rules = ""
    digital_fields = ""
    if digital:
        digital_rules = (
            "- Say 'Digital Download' or 'Printable' in the title.\n"
            "- Mention the instant download and list the file formats "
            "(PDF, JPG, PNG, SVG) in the description.\n"
        )
        digital_fields = (
            '  "fileFormats": ["PDF", "PNG"],\n'
            '  "instantDownload": true,\n'
            '  "licenseInfo": "Personal use only",\n'
        )
        structure = "Describe what the buyer downloads, how to print or use it."
    else:
        structure = f"Use these section headings in order:\n{sections}"
    return f"""Write a marketplace listing.

Title rules:
- 20 to 140 characters, no word used twice, commas instead of dashes or pipes.
- Primary subject and material in the first 40 characters.
{digital_rules}
Description rules:
- {_banned_line()}.
- No placeholders such as [Product Name]. {structure}

Tags: exactly {LISTING_TAG_COUNT} unique tags without '#', at least 7 of them
multi-word long-tail phrases.

Inputs:
{_inputs_block(payload)}

Return this JSON:
{{
  "newTitle": "...",
  "newDescription": "...",
  "hashtags": ["...", "..."],
  "seoStrategy": "...",
{digital_fields}  "socialMedia": {{
    "pinterestTitle": "...",
    "pinterestDescription": "...",
    "pinterestAltText": "...",
    "pinterestHashtags": "...",
    "instagramCaption": "...",
    "instagramHashtags": "#... (20 to 30 hashtags)"
  }}
}}"""


def _marketplace_prompt(payload: ListingGenerationRequest) -> str:
    return f"""Write a product listing for a large online marketplace.

Rules:
- Title: 80 to 200 characters.
- Exactly {MARKETPLACE_BULLET_COUNT} bullet points of 150 to 250 characters each.
- Product description of about 1800 characters. {_banned_line()}.
- Backend keywords: 100 to 250 characters, separated by spaces, no commas.
- No placeholders such as [Brand].

Inputs:
{_inputs_block(payload)}

Return this JSON:
{{
  "productIdentified": "...",
  "confidence": 0.9,
  "title": "...",
  "bulletPoints": ["...", "...", "...", "...", "..."],
  "productDescription": "...",
  "backendKeywords": "...",
  "aPlusSuggestions": "...",
  "suggestedCategory": "...",
  "estimatedPrice": "...",
  "seoScore": 90
}}"""


def build_prompt(domain: str, payload: ListingGenerationRequest) -> str:
    if domain == ListingDomain.MARKETPLACE:
        return _marketplace_prompt(payload)
    return _general_prompt(payload, digital=domain == ListingDomain.DIGITAL)


def build_generation_request(
    domain: str, payload: ListingGenerationRequest
) -> GenerationRequest:
    """Turn seller inputs into the immutable request the gate re-sends on retry."""
    image_data: bytes | None = None
    media_type: str | None = None
    if payload.image_base64:
        image_data, media_type = decode_reference_image(payload.image_base64)
    return GenerationRequest(
        domain=domain,
        prompt=build_prompt(domain, payload),
        image_data=image_data,
        image_media_type=media_type,
    )
