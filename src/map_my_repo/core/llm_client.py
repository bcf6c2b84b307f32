"""LLM client for code analysis using OpenAI or OpenRouter API."""

import json
import os
import re
from typing import Any, Literal

import httpx
from loguru import logger
from pydantic import ValidationError

from ..config.defaults import (
    ANALYSIS_CONTENT_LIMIT,
    MAX_SEARCH_PATHS,
    QUESTION_CONTENT_LIMIT,
    TREE_STRING_MAX_DEPTH,
)
from .exceptions import AnalysisError
from .models import AnalysisResult, NodeKind, TreeNode

# Type alias for provider
LLMProvider = Literal["openai", "openrouter"]

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def generate_tree_string(
    node: TreeNode, depth: int = 0, max_depth: int = TREE_STRING_MAX_DEPTH
) -> str:
    """Render a folder subtree as an indented list for prompts.

    Deeper levels are elided so huge trees do not blow the token budget.
    """
    indent = "  " * depth
    result = f"{indent}- {node.name} ({node.kind.value.upper()})\n"

    if node.children:
        if depth < max_depth:
            for child in node.children:
                result += generate_tree_string(child, depth + 1, max_depth)
        else:
            result += f"{indent}  ... (more nested items)\n"
    return result


class LLMClient:
    """Client for LLM-powered code analysis.

    Supports both OpenAI and OpenRouter APIs:
    1. Summarize a file and list its main functions/classes/components
    2. Summarize the responsibility of a folder
    3. Answer questions about a file or folder
    4. Pick the file most likely to answer a free-text query

    Provider Selection Priority:
    1. Explicit provider parameter
    2. Auto-detect: OpenAI if available, otherwise OpenRouter
    """

    DEFAULT_MODELS = {
        "openai": "gpt-4o-mini",
        "openrouter": "google/gemini-2.5-flash",
    }

    API_ENDPOINTS = {
        "openai": "https://api.openai.com/v1/chat/completions",
        "openrouter": "https://openrouter.ai/api/v1/chat/completions",
    }

    TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        model: str | None = None,
        timeout: float = TIMEOUT_SECONDS,
        provider: LLMProvider | None = None,
        openai_api_key: str | None = None,
        openrouter_api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        content_limit: int = ANALYSIS_CONTENT_LIMIT,
    ) -> None:
        """Initialize LLM client.

        Args:
            model: Model to use (defaults based on provider)
            timeout: Request timeout in seconds
            provider: Explicit provider ('openai' or 'openrouter')
            openai_api_key: OpenAI API key (or use OPENAI_API_KEY env var)
            openrouter_api_key: OpenRouter API key (or use OPENROUTER_API_KEY env var)
            transport: Optional httpx transport (tests inject a MockTransport)
            content_limit: Characters of file content sent for analysis

        Raises:
            ValueError: If no API key is found for any provider
        """
        self.openai_key = openai_api_key or os.environ.get("OPENAI_API_KEY")
        self.openrouter_key = openrouter_api_key or os.environ.get("OPENROUTER_API_KEY")

        if provider:
            self.provider: LLMProvider = provider
            if provider == "openai" and not self.openai_key:
                raise ValueError(
                    "OpenAI provider specified but OPENAI_API_KEY not found. "
                    "Please set OPENAI_API_KEY environment variable."
                )
            elif provider == "openrouter" and not self.openrouter_key:
                raise ValueError(
                    "OpenRouter provider specified but OPENROUTER_API_KEY not found. "
                    "Please set OPENROUTER_API_KEY environment variable."
                )
        elif self.openai_key:
            self.provider = "openai"
        elif self.openrouter_key:
            self.provider = "openrouter"
        else:
            raise ValueError(
                "No API key found. Please set OPENAI_API_KEY or OPENROUTER_API_KEY "
                "environment variable, or pass openai_api_key or openrouter_api_key parameter."
            )

        if self.provider == "openai":
            self.api_key = self.openai_key
            self.model = model or os.environ.get(
                "OPENAI_MODEL", self.DEFAULT_MODELS["openai"]
            )
        else:
            self.api_key = self.openrouter_key
            self.model = model or os.environ.get(
                "OPENROUTER_MODEL", self.DEFAULT_MODELS["openrouter"]
            )
        self.api_endpoint = self.API_ENDPOINTS[self.provider]

        self.timeout = timeout
        self._transport = transport
        self.content_limit = content_limit

        logger.debug(
            f"Initialized LLM client with provider: {self.provider}, model: {self.model}"
        )

    async def analyze(self, name: str, content: str) -> AnalysisResult | None:
        """Summarize a file and list its main exported symbols.

        Args:
            name: File name (used as a hint for the language)
            content: Source text; truncated to keep within token limits

        Returns:
            Validated analysis, or None if the model returned nothing

        Raises:
            AnalysisError: If the request fails or the response is not valid JSON
        """
        truncated = content[: self.content_limit]

        system_prompt = """You are an expert software architect. Analyze source files and answer in JSON only.

Respond with an object of this exact shape:
{"summary": "<2 sentences on the file's architectural role>",
 "items": [{"name": "<identifier>", "type": "FUNCTION" | "CLASS" | "COMPONENT", "description": "<max 10 words>"}]}

List the main functions, classes and UI components the file defines or exports."""

        user_prompt = f"""Analyze "{name}".
---
CODE:
{truncated}"""

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        response = await self._chat_completion(messages, json_mode=True)
        text = self._message_content(response).strip()
        if not text:
            return None

        try:
            data = json.loads(_CODE_FENCE.sub("", text))
            result = AnalysisResult.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Unparseable analysis for {name}: {e}")
            raise AnalysisError(f"Could not parse analysis of {name}: {e}") from e

        logger.debug(f"Analyzed {name}: {len(result.items)} items")
        return result

    async def analyze_folder(self, node: TreeNode) -> str | None:
        """Summarize a folder's responsibility in two sentences."""
        tree_map = generate_tree_string(node)
        messages = [
            {
                "role": "user",
                "content": (
                    f"Analyze folder: {node.name}\n"
                    f"Structure:\n{tree_map}\n"
                    "Summarize responsibility in 2 sentences."
                ),
            }
        ]
        response = await self._chat_completion(messages)
        return self._message_content(response).strip() or None

    async def ask_question(self, node: TreeNode, question: str) -> str:
        """Answer a question about a file or folder in under 100 words."""
        if node.kind == NodeKind.FOLDER:
            context = f"Folder Structure Map (Recursive):\n{generate_tree_string(node)}"
        elif node.content:
            context = f"Code Content:\n{node.content[:QUESTION_CONTENT_LIMIT]}"
        else:
            context = f"File: {node.name} (Content unavailable)"

        messages = [
            {"role": "system", "content": "Expert dev explaining code."},
            {
                "role": "user",
                "content": (
                    f"Target: {node.id} ({node.kind.value.upper()}).\n\n"
                    f"Context:\n{context}\n\n"
                    f'Question: "{question}"\n\n'
                    "Answer <100 words. Use Markdown."
                ),
            },
        ]
        response = await self._chat_completion(messages)
        return self._message_content(response).strip() or "No answer generated."

    async def find_relevant_file(
        self, query: str, all_file_paths: list[str]
    ) -> str | None:
        """Pick the single file path most likely to answer ``query``.

        Returns:
            A path from ``all_file_paths`` (cleaned of quotes), or None
        """
        path_list = "\n".join(all_file_paths[:MAX_SEARCH_PATHS])
        messages = [
            {
                "role": "user",
                "content": (
                    "I have a list of file paths from a software repository.\n"
                    f'The user is asking: "{query}"\n\n'
                    "Based on the file names, folder structure, and common software "
                    "conventions, identify the SINGLE file path that is MOST LIKELY "
                    "to contain the logic or definition the user is looking for.\n\n"
                    "Return ONLY the full path string.\n"
                    'If nothing is relevant, return "null".\n\n'
                    f"File Paths:\n{path_list}"
                ),
            }
        ]
        response = await self._chat_completion(messages)
        result = self._message_content(response).strip()

        if not result or result == "null" or " " in result:
            return None
        return re.sub(r"[`'\"]", "", result)

    @staticmethod
    def _message_content(response: dict[str, Any]) -> str:
        choices = response.get("choices") or []
        if not choices:
            raise AnalysisError("LLM response contained no choices")
        return (choices[0].get("message") or {}).get("content") or ""

    async def _chat_completion(
        self, messages: list[dict[str, str]], json_mode: bool = False
    ) -> dict[str, Any]:
        """Make chat completion request to OpenAI or OpenRouter API.

        Args:
            messages: List of message dictionaries with role and content
            json_mode: Ask the provider for a JSON object response

        Returns:
            API response dictionary

        Raises:
            AnalysisError: If API request fails
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        if self.provider == "openrouter":
            headers["X-Title"] = "map-my-repo"

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        provider_name = self.provider.capitalize()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_endpoint,
                    headers=headers,
                    json=payload,
                )

                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException as e:
            logger.error(f"{provider_name} API timeout after {self.timeout}s")
            raise AnalysisError(
                f"LLM request timed out after {self.timeout} seconds."
            ) from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_msg = f"{provider_name} API error (HTTP {status_code})"

            if status_code == 401:
                env_var = (
                    "OPENAI_API_KEY"
                    if self.provider == "openai"
                    else "OPENROUTER_API_KEY"
                )
                error_msg = f"Invalid {provider_name} API key. Please check {env_var} environment variable."
            elif status_code == 429:
                error_msg = f"{provider_name} API rate limit exceeded. Please wait and try again."
            elif status_code >= 500:
                error_msg = f"{provider_name} API server error. Please try again later."

            logger.error(error_msg)
            raise AnalysisError(error_msg, {"status_code": status_code}) from e

        except Exception as e:
            logger.error(f"{provider_name} API request failed: {e}")
            raise AnalysisError(f"LLM request failed: {e}") from e
