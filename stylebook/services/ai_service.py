import base64
import io
import json
import logging
import re
from typing import Any, Optional

import httpx
from PIL import Image, ImageOps
from pydantic import BaseModel, Field, ValidationError

from stylebook.config import get_settings
from stylebook.exceptions import ExternalServiceError
from stylebook.schemas.analysis import WardrobeAnalysis
from stylebook.schemas.item import DetectedItem
from stylebook.schemas.outfit import GeneratedOutfit, WeatherInfo
from stylebook.schemas.recommendation import ShoppingRecommendation

logger = logging.getLogger(__name__)

DETECTION_PROMPT = """Analyze this image and detect ALL individual clothing items visible.

For EACH distinct clothing item found, provide:
{
  "items": [
    {
      "category": "one of: top, bottom, shoes, outerwear, accessory, dress, suit",
      "colors": ["primary color", "secondary color if any"],
      "season": ["spring", "summer", "fall", "winter"],
      "style": ["casual", "formal", "sporty", "elegant", etc.],
      "description": "brief description of the item",
      "confidence": 0.95
    }
  ]
}

Rules:
- Detect ALL items, even if worn together in an outfit
- Each item should be a separate object in the array
- If only one item is visible, return an array with one object
- Set confidence (0-1) based on visibility and clarity
- Only respond with valid JSON, no additional text"""

OUTFIT_RESPONSE_FORMAT = """Provide a JSON response with:
{
  "outfit": {
    "top": "item description or null",
    "bottom": "item description or null",
    "shoes": "item description or null",
    "outerwear": "item description or null",
    "accessories": ["item descriptions"]
  },
  "reasoning": "brief explanation of why this outfit works",
  "tips": "styling tips",
  "styleNotes": "optional short note on the overall style, or null",
  "visualPrompt": "A detailed, photorealistic description of a fashion model wearing this exact outfit in a setting appropriate for the occasion."
}

Only respond with valid JSON."""

SHOPPING_RESPONSE_FORMAT = """Return JSON:
{
  "recommendations": [
    {
      "category": "...",
      "itemType": "...",
      "description": "...",
      "suggestedColors": [],
      "suggestedStyle": [],
      "reasoning": "...",
      "pairsWith": [],
      "priority": "high/medium/low"
    }
  ]
}"""


class PreferenceHint(BaseModel):
    description: str
    avg_rating: float


class ComboHint(BaseModel):
    colors: str
    avg_rating: float


class LearnedPreferences(BaseModel):
    total_ratings: int = 0
    top_items: list[PreferenceHint] = Field(default_factory=list)
    top_color_combos: list[ComboHint] = Field(default_factory=list)
    low_rated_items: list[PreferenceHint] = Field(default_factory=list)


class OutfitConstraints(BaseModel):
    weather: WeatherInfo | None = None
    occasion: str | None = None
    anchor_description: str | None = None
    style: str | None = None
    preferences: LearnedPreferences | None = None


class ShoppingContext(BaseModel):
    analysis: WardrobeAnalysis
    limit: int = 8
    gender: str | None = None
    preferences: LearnedPreferences = Field(default_factory=LearnedPreferences)
    favorite_descriptions: list[str] = Field(default_factory=list)


def extract_json(text: str) -> Optional[Any]:
    """Extract JSON from model output, handling markdown fences and chatter."""
    # Try direct parse
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    # Try extracting from markdown code block
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    # Try finding JSON object with balanced braces
    start_idx = text.find("{")
    if start_idx != -1:
        brace_count = 0
        for i, char in enumerate(text[start_idx:], start_idx):
            if char == "{":
                brace_count += 1
            elif char == "}":
                brace_count -= 1
                if brace_count == 0:
                    try:
                        return json.loads(text[start_idx : i + 1])
                    except json.JSONDecodeError:
                        break
    return None


def describe_catalog(items) -> str:
    """One line per item: ``category: description (colors) [FAVORITE]``."""
    lines = []
    for item in items:
        line = f"{item.category}: {item.description or ''} ({', '.join(item.colors or [])})"
        if item.favorite:
            line += " [FAVORITE]"
        lines.append(line)
    return "\n".join(lines)


def build_outfit_prompt(catalog_description: str, constraints: OutfitConstraints) -> str:
    prompt = (
        "You are a professional fashion stylist. Based on the following wardrobe items, "
        "suggest a complete outfit.\n\n"
        f"Available items:\n{catalog_description}\n\nConstraints:"
    )

    weather = constraints.weather
    if weather and weather.temp is not None:
        prompt += f"\n- Weather: {weather.temp:g}°F, {weather.condition or 'unknown'}"
    if constraints.occasion:
        prompt += f"\n- Occasion: {constraints.occasion}"
    if constraints.anchor_description:
        prompt += f"\n- Must include: {constraints.anchor_description}"
    if constraints.style:
        prompt += f"\n- Style preference: {constraints.style}"

    prefs = constraints.preferences
    if prefs:
        prompt += f"\n\nUser Preferences (learned from {prefs.total_ratings} rated items):"
        if prefs.top_items:
            liked = ", ".join(f"{i.description} ({i.avg_rating:.1f}★)" for i in prefs.top_items)
            prompt += f"\n- Highly rated items: {liked}"
            prompt += "\n  → STRONGLY PREFER these items in the outfit"
        if prefs.top_color_combos:
            combos = ", ".join(f"{c.colors} ({c.avg_rating:.1f}★)" for c in prefs.top_color_combos)
            prompt += f"\n- Successful color combinations: {combos}"
            prompt += "\n  → Try to use these color pairings"
        if prefs.low_rated_items:
            avoided = ", ".join(
                f"{i.description} ({i.avg_rating:.1f}★)" for i in prefs.low_rated_items
            )
            prompt += f"\n- Items to avoid: {avoided}"
            prompt += "\n  → AVOID using these items unless absolutely necessary"

    return f"{prompt}\n\n{OUTFIT_RESPONSE_FORMAT}"


def build_shopping_prompt(context: ShoppingContext) -> str:
    analysis = context.analysis
    prompt = (
        f"You are a professional fashion stylist. Recommend {context.limit} new clothing items.\n"
        "WARDROBE ANALYSIS:\n"
        f"- Total items: {analysis.total_items}\n"
        f"- Missing: {', '.join(analysis.missing_categories) or 'nothing'}\n"
        f"- Seasonal gaps: {', '.join(analysis.seasonal_gaps) or 'none'}\n"
        f"- Strengths: {', '.join(analysis.strengths) or 'none'}\n\n"
        "USER PREFERENCES:"
    )

    if context.gender:
        prompt += f"\n- User Gender: {context.gender}"
        if context.gender.lower() == "male":
            prompt += (
                "\n  IMPORTANT: Do NOT suggest dresses, skirts, heels, blouses, or other "
                "typically female-only items. Suggest MEN'S clothing only."
            )

    prefs = context.preferences
    if prefs.total_ratings > 0:
        if prefs.top_items:
            prompt += f"\n- User likes: {', '.join(i.description for i in prefs.top_items)}"
        if prefs.top_color_combos:
            prompt += (
                f"\n- Favorite color combinations: {', '.join(c.colors for c in prefs.top_color_combos)}"
            )
        if prefs.low_rated_items:
            prompt += f"\n- User dislikes/avoids: {', '.join(i.description for i in prefs.low_rated_items)}"
            prompt += "\n- AVOID recommending items similar to the dislikes."

    if context.favorite_descriptions:
        prompt += f"\n- Favorite pieces: {', '.join(context.favorite_descriptions)}"

    if analysis.style_distribution:
        styles = ", ".join(f"{style} ({count})" for style, count in analysis.style_distribution.items())
        prompt += f"\n- Current Wardrobe Styles: {styles}"
        prompt += "\n- Match the user's existing style preferences unless they are missing basic essentials."

    return f"{prompt}\n\n{SHOPPING_RESPONSE_FORMAT}"


class AIEndpointConfig:
    """Configuration for an AI endpoint."""

    def __init__(
        self,
        url: str,
        vision_model: str,
        text_model: str,
        image_model: str,
        name: str = "default",
    ):
        self.url = url.rstrip("/")
        self.vision_model = vision_model
        self.text_model = text_model
        self.image_model = image_model
        self.name = name


class AIService:
    """OpenAI-compatible client for clothing detection, outfit and shopping text, and outfit images."""

    def __init__(self, endpoints: list[dict] | None = None):
        """
        Args:
            endpoints: Extra endpoint configs tried before the default one.
                       Defaults to ``AI_ENDPOINTS`` from settings.
        """
        self.settings = get_settings()
        self.timeout = self.settings.ai_timeout
        self.api_key = self.settings.ai_api_key

        self._endpoints: list[AIEndpointConfig] = []
        for ep in endpoints if endpoints is not None else self.settings.ai_endpoints:
            if not ep.get("enabled", True):
                continue
            self._endpoints.append(
                AIEndpointConfig(
                    url=ep["url"],
                    vision_model=ep.get("vision_model", self.settings.ai_vision_model),
                    text_model=ep.get("text_model", self.settings.ai_text_model),
                    image_model=ep.get("image_model", self.settings.ai_image_model),
                    name=ep.get("name", "custom"),
                )
            )

        # Configured default endpoint is always the last fallback
        if self.settings.ai_base_url:
            self._endpoints.append(
                AIEndpointConfig(
                    url=self.settings.ai_base_url,
                    vision_model=self.settings.ai_vision_model,
                    text_model=self.settings.ai_text_model,
                    image_model=self.settings.ai_image_model,
                    name="default",
                )
            )

    def _get_headers(self) -> dict:
        """Get headers for AI API requests, including auth if configured."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _preprocess_image(self, image_data: bytes) -> str:
        """Downscale an upload for the vision model and return it as base64 JPEG."""
        with Image.open(io.BytesIO(image_data)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")

            # 1024px keeps multi-item photos legible while staying cheap
            img.thumbnail((1024, 1024), Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=85)
            return base64.b64encode(buffer.getvalue()).decode("utf-8")

    async def _call_with_fallback(
        self,
        messages: list,
        task_name: str,
        use_vision_model: bool = False,
        temperature: float | None = None,
    ) -> str:
        """
        Post a chat completion to each endpoint in turn, retrying per endpoint.

        Returns the first successful message content. Raises
        ``ExternalServiceError`` once every endpoint has failed.
        """
        if not self._endpoints:
            raise ExternalServiceError("No AI endpoint configured")

        last_error: Exception | None = None

        for endpoint in self._endpoints:
            logger.info(f"Trying AI endpoint for {task_name}: {endpoint.name}")
            model = endpoint.vision_model if use_vision_model else endpoint.text_model
            payload: dict[str, Any] = {"model": model, "messages": messages, "stream": False}
            if temperature is not None:
                payload["temperature"] = temperature

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                for attempt in range(self.settings.ai_max_retries):
                    try:
                        response = await client.post(
                            f"{endpoint.url}/chat/completions",
                            headers=self._get_headers(),
                            json=payload,
                        )
                        response.raise_for_status()

                        data = response.json()
                        content = data["choices"][0]["message"]["content"]
                        used_model = data.get("model", model)
                        logger.info(f"AI {task_name} successful via {endpoint.name} (model: {used_model})")
                        return content

                    except httpx.HTTPStatusError as e:
                        last_error = e
                        logger.warning(f"HTTP error from {endpoint.name} (attempt {attempt + 1}): {e}")
                    except httpx.RequestError as e:
                        last_error = e
                        logger.warning(f"Request error from {endpoint.name} (attempt {attempt + 1}): {e}")
                    except (KeyError, IndexError, TypeError, ValueError) as e:
                        last_error = e
                        logger.warning(f"Unexpected response shape from {endpoint.name}: {e}")
                        break

        raise ExternalServiceError(f"AI {task_name} failed on all endpoints: {last_error}")

    async def analyze_image(self, image_data: bytes) -> list[DetectedItem]:
        """Detect every clothing item in a photo. An empty list is a valid answer."""
        image_base64 = self._preprocess_image(image_data)
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": DETECTION_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{image_base64}"},
                    },
                ],
            }
        ]

        content = await self._call_with_fallback(messages, "detection", use_vision_model=True)
        return self.parse_detected_items(content)

    @staticmethod
    def parse_detected_items(content: str) -> list[DetectedItem]:
        data = extract_json(content)
        if data is None:
            logger.warning(f"Could not parse JSON from AI response: {content[:200]}")
            raise ExternalServiceError("AI returned an unreadable detection response")

        if isinstance(data, dict):
            raw_items = data["items"] if "items" in data else [data]
        elif isinstance(data, list):
            raw_items = data
        else:
            raise ExternalServiceError("AI detection response is not an object or list")

        if not isinstance(raw_items, list):
            raise ExternalServiceError("AI detection response has no item list")

        try:
            items = [DetectedItem.model_validate(raw) for raw in raw_items]
        except (ValidationError, TypeError) as e:
            raise ExternalServiceError(f"AI detection response failed validation: {e}") from e

        logger.info(f"Detected {len(items)} clothing items")
        return items

    async def generate_outfit_text(
        self, catalog_description: str, constraints: OutfitConstraints
    ) -> GeneratedOutfit:
        prompt = build_outfit_prompt(catalog_description, constraints)
        content = await self._call_with_fallback(
            [{"role": "user", "content": prompt}], "outfit", temperature=0.4
        )
        return self.parse_outfit(content)

    @staticmethod
    def parse_outfit(content: str) -> GeneratedOutfit:
        data = extract_json(content)
        if not isinstance(data, dict):
            logger.warning(f"Could not parse outfit JSON from AI response: {content[:200]}")
            raise ExternalServiceError("AI returned an unreadable outfit response")
        try:
            return GeneratedOutfit.model_validate(data)
        except (ValidationError, TypeError) as e:
            raise ExternalServiceError(f"AI outfit response failed validation: {e}") from e

    async def generate_shopping_text(self, context: ShoppingContext) -> list[ShoppingRecommendation]:
        messages = [
            {"role": "system", "content": "You are a personal shopper that outputs JSON."},
            {"role": "user", "content": build_shopping_prompt(context)},
        ]
        content = await self._call_with_fallback(messages, "shopping", temperature=0.7)
        return self.parse_recommendations(content)

    @staticmethod
    def parse_recommendations(content: str) -> list[ShoppingRecommendation]:
        data = extract_json(content)
        if isinstance(data, dict):
            data = data.get("recommendations")
        if not isinstance(data, list):
            raise ExternalServiceError("AI returned an unreadable recommendation response")
        try:
            return [ShoppingRecommendation.model_validate(raw) for raw in data]
        except (ValidationError, TypeError) as e:
            raise ExternalServiceError(f"AI recommendation response failed validation: {e}") from e

    async def generate_image(self, visual_prompt: str) -> bytes | None:
        """
        Render an outfit picture. Returns None when no endpoint can produce one;
        image generation being unavailable is not an error.
        """
        prompt = (
            f"Professional fashion photography: {visual_prompt}. Studio lighting, high quality, "
            "detailed, fashion magazine style."
        )

        for endpoint in self._endpoints:
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        f"{endpoint.url}/images/generations",
                        headers=self._get_headers(),
                        json={"model": endpoint.image_model, "prompt": prompt, "n": 1, "size": "1024x1024"},
                    )
                    response.raise_for_status()
                    data = response.json().get("data") or []
                    encoded = data[0].get("b64_json") if data else None
                    if encoded:
                        logger.info(f"Outfit image generated via {endpoint.name}")
                        return base64.b64decode(encoded)
                    logger.warning(f"No image data in response from {endpoint.name}")
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Image generation unavailable via {endpoint.name}: {e}")

        return None

    async def check_health(self) -> dict:
        """Check health of all configured AI endpoints."""
        endpoints_health = []

        for endpoint in self._endpoints:
            try:
                async with httpx.AsyncClient(timeout=5) as client:
                    response = await client.get(f"{endpoint.url}/models", headers=self._get_headers())
                if response.status_code == 200:
                    # OpenAI format: {"data": [{"id": "model-name", ...}]}
                    models = response.json().get("data", [])
                    endpoints_health.append({
                        "name": endpoint.name,
                        "url": endpoint.url,
                        "status": "healthy",
                        "vision_model": endpoint.vision_model,
                        "text_model": endpoint.text_model,
                        "available_models": [m.get("id", "") for m in models],
                    })
                else:
                    endpoints_health.append({
                        "name": endpoint.name,
                        "url": endpoint.url,
                        "status": "unhealthy",
                        "error": f"HTTP {response.status_code}",
                    })
            except (httpx.HTTPError, ValueError) as e:
                endpoints_health.append({
                    "name": endpoint.name,
                    "url": endpoint.url,
                    "status": "unhealthy",
                    "error": str(e),
                })

        # Overall status is healthy if at least one endpoint is healthy
        any_healthy = any(ep["status"] == "healthy" for ep in endpoints_health)
        return {
            "status": "healthy" if any_healthy else "unhealthy",
            "endpoints": endpoints_health,
        }


def get_ai_service() -> AIService:
    """FastAPI dependency: a fresh gateway per request, overridable in tests."""
    return AIService()
