"""
Structured Output utilities for AWS Bedrock.

Bedrock's invoke API has no response_format parameter, so the JSON schema of a
Pydantic model is injected into the prompt and the reply is parsed and
validated, with one optional repair round-trip.
"""

import json
import logging
from typing import Any, Dict, Optional, Type, TypeVar
from pydantic import BaseModel

from clients.bedrock_client import BedrockClient, BedrockError
from utils.json_sanitizer import JSONSanitizerError, extract_and_validate
from configs.config import Config

T = TypeVar('T', bound=BaseModel)


class StructuredOutputError(Exception):
    """Exception raised when structured output fails."""
    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        super().__init__(message)
        self.code = code


class StructuredOutputClient:
    """
    Client for getting validated Pydantic objects from a Bedrock model.
    """

    def __init__(self, bedrock_client: Optional[BedrockClient] = None):
        """
        Initialize the structured output client.

        Args:
            bedrock_client: Optional BedrockClient instance. If not provided, creates a new one.
        """
        self.bedrock_client = bedrock_client or BedrockClient()
        self.logger = logging.getLogger(__name__)

    def create(self, model_class: Type[T], prompt: str, max_tokens: Optional[int] = None) -> T:
        """
        Create a structured output using a Pydantic model.

        Args:
            model_class: The Pydantic model class to validate against
            prompt: The prompt to send to the model
            max_tokens: Maximum number of tokens to generate

        Returns:
            An instance of the specified Pydantic model

        Raises:
            StructuredOutputError: If the model call fails or the response cannot be parsed or validated
        """
        schema = model_class.model_json_schema()
        raw = self._invoke(self._enhance_prompt_with_schema(prompt, schema), max_tokens)
        try:
            return extract_and_validate(raw, model_class)
        except JSONSanitizerError as e:
            if not Config.ALLOW_JSON_REPAIR:
                raise StructuredOutputError(f"Invalid structured response: {e}", code=e.code)
            self.logger.warning(f"Structured output invalid ({e.code}), attempting repair")

        repair_prompt = (
            "Return ONLY a single JSON object that validates against this schema.\n"
            "SCHEMA:\n" + json.dumps(schema, separators=(",", ":")) + "\n"
            "PREVIOUS_ATTEMPT (may be invalid):\n" + raw[: Config.REPAIR_PROMPT_MAX_CHARS] + "\n"
        )
        raw2 = self._invoke(repair_prompt, max_tokens)
        try:
            return extract_and_validate(raw2, model_class)
        except JSONSanitizerError as e:
            raise StructuredOutputError(f"Invalid structured response after repair: {e}", code=e.code)

    def _invoke(self, prompt: str, max_tokens: Optional[int]) -> str:
        try:
            return self.bedrock_client.invoke_model(prompt=prompt, max_tokens=max_tokens)
        except BedrockError as e:
            raise StructuredOutputError(f"Model call failed: {e}", code=e.code) from e

    def _enhance_prompt_with_schema(self, prompt: str, schema: Dict[str, Any]) -> str:
        """
        Enhance the prompt with schema information to guide the model's response.

        Args:
            prompt: Original prompt
            schema: JSON schema for the expected response

        Returns:
            Enhanced prompt with schema guidance
        """
        schema_guidance = f"""
Please respond with a valid JSON object that matches this schema:

{json.dumps(schema, indent=2)}

Important:
- Ensure all required fields are present
- Use the exact field names from the schema
- For enum fields, use only the allowed values
- Do not include any text before or after the JSON object

Your response should be a single, valid JSON object.
"""

        return f"{prompt}\n\n{schema_guidance}"
