from __future__ import annotations

from pathlib import Path
from typing import Any

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from gfrecipes.services.errors import (
    EmptyResponseError,
    FetchFailedError,
    NetworkTimeoutError,
    ProviderConfigurationError,
    RateLimitedError,
    ServiceError,
)


class GeminiPromptError(ServiceError):
    pass


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        timeout_seconds: float = 60.0,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self._configure_api()

    def _configure_api(self) -> None:
        if not self.api_key:
            raise ProviderConfigurationError("Missing Google API key.")
        genai.configure(api_key=self.api_key)

    def _load_system_prompt(self, file_path: Path) -> str:
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError as not_found_error:
            raise GeminiPromptError(f"Prompt file not found: {file_path}") from not_found_error
        except (OSError, IOError) as io_error:
            raise GeminiPromptError(f"Unable to read prompt file: {io_error}") from io_error

    def generate_from_document(
        self,
        document: bytes,
        mime_type: str,
        system_prompt_path: Path,
        *,
        instruction: str = "Extract the recipe from this document.",
        response_mime_type: str | None = None,
    ) -> str:
        system_instruction = self._load_system_prompt(system_prompt_path)
        model = genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_instruction,
        )

        generation_config: dict[str, Any] = {"temperature": 0}
        if response_mime_type:
            generation_config["response_mime_type"] = response_mime_type

        try:
            response = model.generate_content(
                [{"mime_type": mime_type, "data": document}, instruction],
                generation_config=generation_config,
                request_options={"timeout": self.timeout_seconds},
            )
        except google_exceptions.ResourceExhausted as err:
            raise RateLimitedError("Gemini API rate limit reached. Try again shortly.") from err
        except google_exceptions.DeadlineExceeded as err:
            raise NetworkTimeoutError(self.model_name, self.timeout_seconds) from err
        except google_exceptions.GoogleAPIError as err:
            raise FetchFailedError(f"Gemini request failed: {err}") from err

        try:
            text = response.text
        except ValueError as err:
            # Raised by the SDK when the candidate was blocked or has no parts.
            raise EmptyResponseError("Model response did not include text content.") from err

        if not text or not text.strip():
            raise EmptyResponseError("Model response did not include text content.")
        return text
