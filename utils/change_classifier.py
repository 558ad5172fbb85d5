#!/usr/bin/env python3
"""Language-model classification of change titles the rules left in ``other``."""

import logging
import os
from typing import Dict, Optional, Sequence

from utils.change_models import Category, ClassificationBatch
from utils.structured_output import StructuredOutputClient

logger = logging.getLogger(__name__)

PROMPT_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "prompts", "categorize_changes.prompt")


class ChangeClassifier:
    """Classifies change titles into the six changelog categories via Bedrock."""

    def __init__(self, structured_client: Optional[StructuredOutputClient] = None):
        self._structured_client = structured_client

    @property
    def structured_client(self) -> StructuredOutputClient:
        # Created lazily so a run that never refines needs no AWS credentials
        if self._structured_client is None:
            self._structured_client = StructuredOutputClient()
        return self._structured_client

    def build_prompt(self, titles: Sequence[str]) -> str:
        with open(PROMPT_PATH, "r", encoding="utf-8") as f:
            template = f.read()
        lines = "\n".join(str(t).replace("\r", " ").replace("\n", " ") for t in titles)
        return template.format(titles=lines)

    def classify(self, titles: Sequence[str]) -> Dict[str, Category]:
        """Return a title -> category mapping for the titles the model answered.

        Raises:
            StructuredOutputError: If the model call fails or returns an invalid shape
        """
        if not titles:
            return {}
        batch = self.structured_client.create(ClassificationBatch, self.build_prompt(titles))
        logger.debug(f"Model classified {len(batch.items)}/{len(titles)} titles")
        return {item.title: item.category for item in batch.items}
