#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
from typing import Optional

import boto3
from botocore.exceptions import ReadTimeoutError, EndpointConnectionError, ClientError

from configs.config import Config


class BedrockError(Exception):
	"""Typed error with a lightweight `.code` used for friendly handling."""
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


def _classify_client_error(e: ClientError) -> str:
	err = e.response.get("Error", {}) if hasattr(e, "response") else {}
	status = err.get("Code", "") or err.get("StatusCode", "")
	msg = err.get("Message", "")
	low = (str(status) + " " + str(msg)).lower()
	if "throttl" in low or "429" in low or "rate" in low:
		return "RATE_LIMIT"
	if "unauthorized" in low or "accessdenied" in low or "403" in low or "401" in low:
		return "UNAUTHORIZED"
	return "UNKNOWN"


class BedrockClient:
	"""Client for Anthropic models on AWS Bedrock."""

	def __init__(self, model_id: Optional[str] = None, max_tokens: Optional[int] = None, runtime=None) -> None:
		cfg = Config.get_bedrock_config()
		self.model_id = model_id or cfg["model_id"]
		self.max_tokens = int(max_tokens or cfg["max_tokens"])
		self.temperature = 0.0
		self._runtime = runtime or boto3.client("bedrock-runtime", region_name=cfg["region_name"])
		self.logger = logging.getLogger(__name__)

	def invoke_model(self, prompt: str, max_tokens: Optional[int] = None) -> str:
		"""
		Invoke the model with a prompt and return the raw text.
		"""
		body = {
			"anthropic_version": "bedrock-2023-05-31",
			"max_tokens": int(max_tokens or self.max_tokens),
			"temperature": self.temperature,
			"messages": [
				{"role": "user", "content": [{"type": "text", "text": prompt}]}
			],
		}
		try:
			resp = self._runtime.invoke_model(
				modelId=self.model_id,
				contentType="application/json",
				accept="application/json",
				body=json.dumps(body).encode("utf-8"),
			)
			payload = resp.get("body")
			raw = payload.read() if hasattr(payload, "read") else payload
			data = json.loads(raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw)
			content = data["content"][0]["text"]
		except ReadTimeoutError as e:
			raise BedrockError(f"Bedrock timeout: {e}", code="TIMEOUT") from e
		except EndpointConnectionError as e:
			raise BedrockError(f"Bedrock unreachable: {e}", code="NETWORK") from e
		except ClientError as e:
			raise BedrockError(f"Bedrock error: {e}", code=_classify_client_error(e)) from e
		except json.JSONDecodeError as e:
			raise BedrockError(f"Invalid JSON response from Bedrock: {e}") from e
		except (KeyError, IndexError, TypeError) as e:
			raise BedrockError(f"Missing key in Bedrock response: {e}") from e

		if not content or not content.strip():
			raise BedrockError("Empty text content in response")
		self.logger.debug(f"Bedrock returned {len(content)} chars")
		return content


__all__ = ["BedrockClient", "BedrockError"]
