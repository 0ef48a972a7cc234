from __future__ import annotations

import logging

from gfrecipes.app.domain.errors import ExtractionFailure
from gfrecipes.app.infra.extraction.base import ExtractionAdapter

logger = logging.getLogger(__name__)

SAMPLE_OCR_TEXT = """
Example Banana Bread
Yield: 1 loaf
Time: 1h 10m

Ingredients:
- 1 1/2 cups all-purpose flour
- 1 tsp baking soda
- 1/2 tsp salt
- 3 ripe bananas, mashed
- 1/2 cup melted butter
- 3/4 cup sugar
- 1 egg, beaten

Steps:
1) Preheat oven to 350F.
2) Mix dry ingredients.
3) Mix wet ingredients and fold into dry.
4) Bake 55-60 minutes.
"""


class StaticExtractionAdapter(ExtractionAdapter):
    """Returns the same OCR-like text for every document."""

    name = "static"

    def __init__(self, text: str = SAMPLE_OCR_TEXT):
        self.text = text

    def extract(self, document_reference: str) -> str:
        if not document_reference or not document_reference.strip():
            raise ExtractionFailure(document_reference, "empty document reference")

        logger.info("Static extraction: reference=%s, chars=%d", document_reference, len(self.text))
        return self.text
