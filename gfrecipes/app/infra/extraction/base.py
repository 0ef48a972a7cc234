# gfrecipes/app/infra/extraction/base.py
"""
Abstract base class for text/vision extraction providers.
The pipeline only sees this contract, so OCR vendors can be swapped.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Union

RecipeDraft = dict[str, Any]
ExtractionOutput = Union[str, RecipeDraft]


class ExtractionAdapter(ABC):
    """
    Wraps an external extraction service.

    Implementations:
    - GeminiExtractionAdapter: Gemini vision model (text or JSON draft)
    - StaticExtractionAdapter: fixed OCR-like text for local runs
    """

    name: str = "extraction"

    @abstractmethod
    def extract(self, document_reference: str) -> ExtractionOutput:
        """
        Extract the content of a recipe document.

        Args:
            document_reference: Opaque reference to the document
                (URL or local path, provider dependent)

        Returns:
            Raw text, or a structured draft with fields
            {title, yield, total_time, ingredients, steps, notes}, verbatim
            from the provider

        Raises:
            ExtractionFailure: If the provider is unreachable, times out or
                rejects the document
        """
        pass
