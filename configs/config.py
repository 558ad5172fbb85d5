import os
from typing import Dict, Any

class Config:
	"""Configuration for the changelog agent."""

	# GitHub REST configuration
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	GITHUB_USER_AGENT = os.getenv("GITHUB_USER_AGENT", "changelogger/1.0")
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	# Transport-level retries on 5xx only; 0 keeps the comparator retry-free
	HTTP_RETRIES = int(os.getenv("HTTP_RETRIES", "0"))

	# Pull request resolution
	PR_BATCH_SIZE = int(os.getenv("PR_BATCH_SIZE", "15"))
	TAGS_PER_PAGE = int(os.getenv("TAGS_PER_PAGE", "20"))

	# Categorization refinement
	REFINE_ENABLED = bool(int(os.getenv("REFINE_ENABLED", "1")))
	REFINE_OTHER_RATIO = float(os.getenv("REFINE_OTHER_RATIO", "0.60"))
	REFINE_MIN_ENTRIES = int(os.getenv("REFINE_MIN_ENTRIES", "5"))
	REFINE_MAX_RUNTIME_S = int(os.getenv("REFINE_MAX_RUNTIME_S", "60"))

	# AWS Bedrock Configuration
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
	BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")
	BEDROCK_MAX_TOKENS = int(os.getenv("BEDROCK_MAX_TOKENS", "2000"))
	ALLOW_JSON_REPAIR = bool(int(os.getenv("ALLOW_JSON_REPAIR", "1")))
	REPAIR_PROMPT_MAX_CHARS = int(os.getenv("REPAIR_PROMPT_MAX_CHARS", "4000"))

	# LangSmith Configuration
	LANGSMITH_API_KEY = os.getenv("LANGSMITH_API_KEY", "")
	LANGSMITH_PROJECT = os.getenv("LANGSMITH_PROJECT", "changelogger")
	LANGSMITH_ENDPOINT = os.getenv("LANGSMITH_ENDPOINT", "https://api.smith.langchain.com")

	METRICS_ROOT = os.getenv("METRICS_ROOT", ".cache/changelogger/metrics")
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "1")))

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"retries": cls.HTTP_RETRIES,
			"user_agent": cls.GITHUB_USER_AGENT,
		}

	@classmethod
	def get_refine_config(cls) -> Dict[str, Any]:
		"""Get thresholds for the LLM refinement pass.

		Returns:
			Mapping with enabled flag, other-ratio threshold, minimum entry count and watchdog seconds.
		"""
		return {
			"enabled": cls.REFINE_ENABLED,
			"other_ratio": cls.REFINE_OTHER_RATIO,
			"min_entries": cls.REFINE_MIN_ENTRIES,
			"max_runtime_s": cls.REFINE_MAX_RUNTIME_S,
		}

	@classmethod
	def get_bedrock_config(cls) -> Dict[str, Any]:
		"""Get Bedrock configuration."""
		return {
			"region_name": cls.AWS_REGION,
			"model_id": cls.BEDROCK_MODEL_ID,
			"max_tokens": cls.BEDROCK_MAX_TOKENS,
		}

	@classmethod
	def get_langsmith_config(cls) -> Dict[str, Any]:
		"""Get LangSmith configuration."""
		return {
			"api_key": cls.LANGSMITH_API_KEY,
			"project": cls.LANGSMITH_PROJECT,
			"endpoint": cls.LANGSMITH_ENDPOINT
		}
