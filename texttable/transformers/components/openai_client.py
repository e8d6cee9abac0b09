#!/usr/bin/env python3
"""
OpenAI client for text/table conversion.

Sends conversion prompts to the OpenAI chat-completion API and returns
tagged ConversionResult values. Any API failure clears the configured
API key, since the most common cause is an invalid or revoked key.
"""

import logging
import time
from typing import List, Optional, Sequence

from openai import OpenAI
from openai import (
    APIError,
    APITimeoutError,
    AuthenticationError,
    OpenAIError,
    PermissionDeniedError,
    RateLimitError,
)

from ..data_models import ConversionResult, TableData
from ..table_converter import TableConverter
from .response_parser import parse_pipe_table
from ...utils.config import config
from ...utils.cost_tracker import CostTracker
from ...utils.credentials import CredentialHolder
from ...utils.single_flight import CancellationToken, OperationCancelledError

logger = logging.getLogger(__name__)

NO_API_KEY_MESSAGE = "API key is not set"
CANCELLED_MESSAGE = "Operation was cancelled"


class OpenAITableClient:
    """
    Converts between text and tables using the OpenAI API.

    This class handles:
    - API key lifecycle (through a shared CredentialHolder)
    - Prompt construction for each conversion
    - OpenAI API calls with retry logic and cancellation
    - Response grammar validation for table results
    - Usage and cost tracking
    """

    TABLE_GRAMMAR = (
        "Return ONLY the table as pipe-delimited rows: one row per line, "
        "cells separated by '|', the header row first, and the same number "
        "of cells in every row. Do not add explanations or code fences."
    )

    TEXT_TO_TABLE_PROMPT = """You are a text-to-table conversion assistant. Your task is to:
1. Convert the input text into a structured table
2. Identify the key information in the text
3. Create a clear, meaningful table
4. Reply in the language of the input

""" + TABLE_GRAMMAR

    TABLE_TO_TEXT_PROMPT = """You are a table-to-text conversion assistant. Your task is to:
1. Convert the input table into natural language text
2. Preserve all information from the table
3. Create clear, readable text
4. Do not include any additional explanations or formatting
5. Reply in the language of the input"""

    ANALYZE_TEXT_PROMPT = """You are a text analysis assistant. Your task is to:
1. Analyze the input text
2. Extract the key information
3. Organize the information into a 2D array that represents a meaningful data structure

""" + TABLE_GRAMMAR

    STRUCTURE_PROMPT = """You are a data modelling assistant. Your task is to:
1. Review the column layout of the table described by the user
2. Explain what each column most likely represents
3. Point out columns whose suggested type looks wrong or inconsistent
4. Keep the answer short and do not repeat the input verbatim
5. Reply in the language of the input"""

    CONNECTION_TEST_MESSAGE = "Connection test"

    def __init__(
        self,
        credentials: Optional[CredentialHolder] = None,
        model: Optional[str] = None,
        temperature: float = 0.0,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        cost_tracker: Optional[CostTracker] = None
    ):
        """
        Initialize OpenAI client.

        Args:
            credentials: Holder of the active API key (a new empty one if None)
            model: Model to use (default: configured model, gpt-4o-mini)
            temperature: Temperature for generation (default: 0.0 for deterministic)
            max_retries: Maximum call attempts (default: configured value)
            timeout: Request timeout in seconds (default: configured value)
            cost_tracker: Usage tracker (a new one if None)
        """
        self.credentials = credentials if credentials is not None else CredentialHolder()
        self.model = model or config.get_default_model()
        self.temperature = temperature
        self.max_retries = max_retries if max_retries is not None else config.get_max_retries()
        self.timeout = timeout if timeout is not None else config.get_request_timeout()
        self.cost_tracker = cost_tracker if cost_tracker is not None else CostTracker(config.get_budget_usd())
        self.table_converter = TableConverter(newline="\n")

        self.client: Optional[OpenAI] = None
        self._client_fingerprint: Optional[str] = None
        logger.info(f"OpenAITableClient initialized with model={self.model}, temperature={temperature}")

    # ------------------------------------------------------------------
    # API key lifecycle
    # ------------------------------------------------------------------

    def set_api_key(self, api_key: str) -> None:
        """
        Validate and activate an API key.

        Raises:
            ValueError: If the key is malformed; no key remains active
        """
        try:
            self.credentials.set(api_key)
        except ValueError:
            self._drop_client()
            raise
        self._active_client()

    def clear_api_key(self) -> None:
        """Forget the active API key and drop the SDK client."""
        self.credentials.clear()
        self._drop_client()

    @property
    def has_api_key(self) -> bool:
        return self.credentials.is_set

    def _active_client(self) -> Optional[OpenAI]:
        """SDK client bound to the holder's current credential, or None."""
        credential = self.credentials.current
        if credential is None:
            self._drop_client()
            return None
        if self.client is None or self._client_fingerprint != credential.fingerprint:
            # The SDK's own retries are disabled; _call_openai_with_retry owns them.
            self.client = OpenAI(api_key=credential.key, timeout=self.timeout, max_retries=0)
            self._client_fingerprint = credential.fingerprint
        return self.client

    def _drop_client(self) -> None:
        self.client = None
        self._client_fingerprint = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def test_connection(self, cancel_token: Optional[CancellationToken] = None) -> bool:
        """
        Issue a minimal request to check the API key.

        Returns False without a network call when no key is set. Any
        failure clears the key. Never raises.

        Returns:
            bool: True if the round trip succeeded
        """
        client = self._active_client()
        if client is None:
            return False

        try:
            self._call_openai_with_retry(
                "test_connection",
                None,
                self.CONNECTION_TEST_MESSAGE,
                max_retries=1,
                cancel_token=cancel_token
            )
            logger.info("OpenAI connection test succeeded")
            return True
        except OperationCancelledError:
            return False
        except Exception as e:
            logger.warning(f"OpenAI connection test failed, clearing API key: {e}")
            self.clear_api_key()
            return False

    def text_to_table(
        self,
        text: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> ConversionResult[str]:
        """
        Ask the model to turn free text into a pipe-delimited table.

        Args:
            text: Input text
            cancel_token: Optional cancellation token

        Returns:
            ConversionResult with the raw trimmed response
        """
        if not text or not text.strip():
            return ConversionResult.fail("Input text must not be empty")
        return self._run(
            "text_to_table",
            self.TEXT_TO_TABLE_PROMPT,
            f"Convert the following text to a table:\n{text}",
            cancel_token
        )

    def table_to_text(
        self,
        markdown_table: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> ConversionResult[str]:
        """
        Ask the model to describe a markdown table in natural language.

        Args:
            markdown_table: Table text
            cancel_token: Optional cancellation token

        Returns:
            ConversionResult with the raw trimmed response
        """
        if not markdown_table or not markdown_table.strip():
            return ConversionResult.fail("Input table must not be empty")
        return self._run(
            "table_to_text",
            self.TABLE_TO_TEXT_PROMPT,
            f"Convert the following table to text:\n{markdown_table}",
            cancel_token
        )

    def text_to_table_data(
        self,
        text: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> ConversionResult[TableData]:
        """
        text_to_table followed by response grammar validation.

        A response that does not follow the pipe-table grammar is a failure
        but does not clear the API key.

        Returns:
            ConversionResult with the parsed TableData
        """
        result = self.text_to_table(text, cancel_token)
        if not result.success:
            return ConversionResult.fail(result.error)

        try:
            rows = parse_pipe_table(result.value)
        except ValueError as e:
            logger.warning(f"Model response is not a valid table: {e}")
            return ConversionResult.fail(f"Model response is not a valid table: {e}")

        return ConversionResult.ok(TableData.from_array(rows))

    def analyze_text(
        self,
        text: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> ConversionResult[List[List[str]]]:
        """
        Extract the key information of a text as a 2-D array.

        Returns:
            ConversionResult with the parsed rows (header first)
        """
        if not text or not text.strip():
            return ConversionResult.fail("Input text must not be empty")

        result = self._run(
            "analyze_text",
            self.ANALYZE_TEXT_PROMPT,
            f"Analyze this text and return a 2D array:\n{text}",
            cancel_token
        )
        if not result.success:
            return ConversionResult.fail(result.error)

        try:
            return ConversionResult.ok(parse_pipe_table(result.value))
        except ValueError as e:
            logger.warning(f"Model response is not a valid 2D array: {e}")
            return ConversionResult.fail(f"Text analysis failed: {e}")

    def generate_text(
        self,
        rows: Sequence[Sequence[Optional[str]]],
        cancel_token: Optional[CancellationToken] = None
    ) -> ConversionResult[str]:
        """
        Describe a 2-D array (header first) in natural language.

        Returns:
            ConversionResult with the generated text
        """
        if not rows:
            return ConversionResult.fail("Input table must not be empty")

        table_string = "\n".join(
            " | ".join("" if cell is None else str(cell) for cell in row) for row in rows
        )
        return self._run(
            "generate_text",
            self.TABLE_TO_TEXT_PROMPT,
            f"Generate text from this data:\n{table_string}",
            cancel_token
        )

    def analyze_table_structure(
        self,
        table: TableData,
        cancel_token: Optional[CancellationToken] = None
    ) -> ConversionResult[str]:
        """
        Ask the model to comment on a table's column layout.

        The prompt carries the locally inferred column types and the row
        count, not the cell data.

        Returns:
            ConversionResult with the model's analysis
        """
        if not table.columns:
            return ConversionResult.fail("Input table must not be empty")

        analysis = self.table_converter.analyze_structure(table)
        lines = ["Columns:"]
        for column in analysis.columns:
            lines.append(f"{column.name}: {column.suggested_type or 'Unknown'}")
        lines.append(f"Total Rows: {analysis.row_count}")

        return self._run(
            "analyze_table_structure",
            self.STRUCTURE_PROMPT,
            "Analyze this table structure:\n" + "\n".join(lines),
            cancel_token
        )

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        system_prompt: str,
        user_prompt: str,
        cancel_token: Optional[CancellationToken]
    ) -> ConversionResult[str]:
        """Call the API and wrap the outcome in a ConversionResult."""
        if self._active_client() is None:
            return ConversionResult.fail(NO_API_KEY_MESSAGE)

        logger.info(f"{operation} called. Input length: {len(user_prompt)}")

        try:
            response_text = self._call_openai_with_retry(
                operation,
                system_prompt,
                user_prompt,
                cancel_token=cancel_token
            )
        except OperationCancelledError:
            logger.info(f"{operation} cancelled")
            return ConversionResult.fail(CANCELLED_MESSAGE)
        except OpenAIError as e:
            logger.error(f"{operation} failed, clearing API key: {e}")
            self.clear_api_key()
            return ConversionResult.fail(f"OpenAI request failed: {e}")
        except Exception as e:
            logger.error(f"{operation} failed unexpectedly, clearing API key: {e}")
            self.clear_api_key()
            return ConversionResult.fail(f"OpenAI request failed: {e}")

        return ConversionResult.ok(response_text.strip())

    def _call_openai_with_retry(
        self,
        operation: str,
        system_prompt: Optional[str],
        user_prompt: str,
        max_retries: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> str:
        """
        Call OpenAI API with exponential backoff retry logic.

        Authentication and permission errors are not retried.

        Args:
            operation: Operation name for logging and cost tracking
            system_prompt: System message (omitted when None)
            user_prompt: User message
            max_retries: Maximum number of attempts (default: self.max_retries)
            cancel_token: Checked before each attempt and after the response

        Returns:
            Response text

        Raises:
            OperationCancelledError: If the token was cancelled
            OpenAIError: If all attempts fail or no key is set
        """
        attempts = max(max_retries if max_retries is not None else self.max_retries, 1)

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        for attempt in range(attempts):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            client = self._active_client()
            if client is None:
                raise OpenAIError(NO_API_KEY_MESSAGE)

            try:
                logger.debug(f"OpenAI API call attempt {attempt + 1}/{attempts}")

                response = client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature
                )

                response_text = response.choices[0].message.content or ""
                self._record_usage(operation, response)

                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()

                logger.info(f"OpenAI API call succeeded on attempt {attempt + 1}")
                return response_text

            except (AuthenticationError, PermissionDeniedError) as e:
                logger.error(f"OpenAI rejected the API key: {e}")
                raise

            except RateLimitError:
                wait_time = 2 ** attempt  # Exponential backoff: 1s, 2s, 4s
                logger.warning(f"Rate limit hit, waiting {wait_time}s before retry {attempt + 1}/{attempts}")
                if attempt < attempts - 1:
                    time.sleep(wait_time)
                else:
                    logger.error("Max retries reached for rate limit")
                    raise

            except APITimeoutError:
                wait_time = 2 ** attempt
                logger.warning(f"API timeout, waiting {wait_time}s before retry {attempt + 1}/{attempts}")
                if attempt < attempts - 1:
                    time.sleep(wait_time)
                else:
                    logger.error("Max retries reached for timeout")
                    raise

            except APIError as e:
                logger.error(f"OpenAI API error: {e}")
                if attempt < attempts - 1:
                    wait_time = 2 ** attempt
                    logger.warning(f"Waiting {wait_time}s before retry {attempt + 1}/{attempts}")
                    time.sleep(wait_time)
                else:
                    logger.error("Max retries reached for API error")
                    raise

        # Should never reach here
        raise OpenAIError("Unexpected: exceeded max retries without raising exception")

    def _record_usage(self, operation: str, response) -> None:
        usage = getattr(response, "usage", None)
        prompt_tokens = _token_count(getattr(usage, "prompt_tokens", 0))
        completion_tokens = _token_count(getattr(usage, "completion_tokens", 0))
        totals = self.cost_tracker.record_usage(operation, self.model, prompt_tokens, completion_tokens)
        logger.debug(
            f"{operation}: {prompt_tokens + completion_tokens} tokens, "
            f"${totals['request_cost']:.6f} (session ${totals['total_cost']:.4f})"
        )


def _token_count(value) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0
