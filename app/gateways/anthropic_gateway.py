"""Anthropic classification adapter.

Uses forced tool-use so every answer arrives as structured tool input.
"""

import logging
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from app.config import settings
from app.core.exceptions import (
    ClassificationQuotaExceeded,
    ClassificationRateLimited,
    ClassificationResponseError,
    ClassificationUnavailable,
)
from app.gateways.base import ClassificationGateway, ClassificationRequest, GatewayType

logger = logging.getLogger(__name__)

# Provider statuses that mean "out of credit or capacity", not "try again now"
QUOTA_STATUS_CODES = {402, 529}
QUOTA_MESSAGE_MARKERS = ("credit balance", "billing", "quota")


class AnthropicClassificationGateway(ClassificationGateway):
    """Claude-backed classification gateway."""

    def __init__(self, client: AsyncAnthropic | None = None) -> None:
        """Initialize the gateway."""
        if client is None and settings.anthropic_api_key:
            client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.client = client
        self.model = settings.claude_model
        self.vision_model = settings.claude_vision_model
        self.max_tokens = settings.claude_max_tokens

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.ANTHROPIC

    def _check_client(self) -> AsyncAnthropic:
        """Ensure API client is configured."""
        if not self.client:
            raise ClassificationUnavailable("Claude API key not configured")
        return self.client

    @staticmethod
    def _build_content(request: ClassificationRequest) -> list[dict[str, Any]]:
        content: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": image.media_type, "data": image.data},
            }
            for image in request.images
        ]
        content.append({"type": "text", "text": request.user_prompt})
        return content

    async def classify(self, request: ClassificationRequest) -> dict[str, Any]:
        """Run a forced tool-use call and return the tool input."""
        client = self._check_client()

        try:
            response = await client.messages.create(
                model=self.vision_model if request.images else self.model,
                max_tokens=request.max_tokens or self.max_tokens,
                system=request.system_prompt,
                messages=[{"role": "user", "content": self._build_content(request)}],
                tools=[
                    {
                        "name": request.tool_name,
                        "description": request.tool_description,
                        "input_schema": request.output_schema,
                    }
                ],
                tool_choice={"type": "tool", "name": request.tool_name},
            )
        except anthropic.RateLimitError as e:
            logger.warning("Classification rate limited: %s", e)
            raise ClassificationRateLimited() from e
        except anthropic.APIStatusError as e:
            message = str(e).lower()
            if e.status_code in QUOTA_STATUS_CODES or any(m in message for m in QUOTA_MESSAGE_MARKERS):
                logger.warning("Classification quota exhausted: status=%s", e.status_code)
                raise ClassificationQuotaExceeded() from e
            logger.error("Classification API error: status=%s %s", e.status_code, e)
            raise ClassificationUnavailable(f"Classification service error: {e.status_code}") from e
        except anthropic.APIConnectionError as e:
            logger.error("Classification API unreachable: %s", e)
            raise ClassificationUnavailable("Classification service unreachable") from e

        for block in response.content:
            if block.type == "tool_use" and block.name == request.tool_name:
                if isinstance(block.input, dict):
                    return block.input
                break

        logger.error("No tool output in classification response for %s", request.tool_name)
        raise ClassificationResponseError()
