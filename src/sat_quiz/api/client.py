"""
Module: api.client

Purpose:
    Async HTTP client for the question-bank API. Fetches identifier lists
    per subject, the live-question lookup, and question content by
    external ID or IBN.

Key Classes:
    - QuestionBankClient: QuestionSource implementation over httpx

Error Mapping:
    - httpx.TimeoutException / httpx.TransportError -> NetworkError
    - Non-200 status -> ApiError(status_code)
    - Unparsable body, empty content, no usable identifiers -> DataError

Dependencies:
    - httpx: Async requests
    - api.parsing: Record parsing

Used By:
    - engine.quiz.QuizSelector (via the QuestionSource protocol)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import httpx

from sat_quiz.config import QuizConfig, SubjectTest
from sat_quiz.core.errors import ApiError, DataError, NetworkError
from sat_quiz.core.models import (
    IdType,
    LiveQuestionList,
    QuestionDetail,
    QuestionIdentifier,
)

from .parsing import (
    METADATA_KEYS,
    identifier_from_record,
    live_list_from_payload,
    normalize_disclosed_item,
    question_from_payload,
)

logger = logging.getLogger(__name__)


class QuestionBankClient:
    """
    Async client for the question-bank endpoints.

    Use as an async context manager, or call aclose() when done. An
    externally supplied httpx.AsyncClient is used as-is and never closed.

    Example:
        >>> async with QuestionBankClient() as api:
        ...     live = await api.fetch_live_identifiers()
    """

    def __init__(
        self,
        config: Optional[QuizConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or QuizConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "QuestionBankClient":
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.request_timeout)
            self._owns_client = True
        return self._client

    # ─────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        url: str,
        *,
        context: str,
        timeout: Optional[float] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        logger.debug(f"{method} {url} ({context})")
        try:
            response = await self._get_client().request(
                method,
                url,
                json=json,
                timeout=timeout or self.config.request_timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout while fetching {context}")
            raise NetworkError(f"Request timeout while fetching {context}", original_error=e) from e
        except httpx.TransportError as e:
            logger.error(f"Network error while fetching {context}: {e}")
            raise NetworkError(f"Network connection failed: {e}", original_error=e) from e

        if response.status_code != 200:
            logger.error(f"HTTP error {response.status_code} while fetching {context}")
            raise ApiError(f"Failed to load {context}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON response for {context}: {e}")
            raise DataError(f"Invalid JSON response format: {e}", original_error=e) from e

    # ─────────────────────────────────────────────────────────────────────
    # QuestionSource
    # ─────────────────────────────────────────────────────────────────────

    async def fetch_live_identifiers(self) -> LiveQuestionList:
        """Fetch identifiers of questions currently live elsewhere."""
        payload = await self._request(
            "GET",
            f"{self.config.qbank_url}/lookup",
            context="live question list",
        )
        if not isinstance(payload, dict):
            raise DataError("Live question list is not a JSON object")
        live = live_list_from_payload(payload)
        logger.info(f"Fetched {len(live)} live question identifiers")
        return live

    async def fetch_identifiers(self, subject_test: SubjectTest) -> List[QuestionIdentifier]:
        """
        Fetch every identifier for one subject, with metadata where present.

        Records without a usable identifier are skipped. Raises DataError if
        the response held records but none produced an identifier.
        """
        context = f"question list for test {subject_test.test}"
        payload = await self._request(
            "POST",
            f"{self.config.qbank_url}/digital/get-questions",
            context=context,
            timeout=self.config.identifiers_timeout,
            json={
                "asmtEventId": self.config.assessment_event_id,
                "test": subject_test.test,
                "domain": subject_test.domains,
            },
        )
        if not isinstance(payload, list):
            raise DataError(f"Invalid response for {context}: expected a list")

        identifiers: List[QuestionIdentifier] = []
        skipped = 0
        for record in payload:
            identifier = identifier_from_record(record, subject_test.subject)
            if identifier is None:
                skipped += 1
                continue
            identifiers.append(identifier)

        logger.info(
            f"Processed {len(identifiers)} question identifiers for test {subject_test.test}, "
            f"{skipped} skipped"
        )
        if not identifiers and payload:
            raise DataError("No valid question identifiers could be processed from API response")
        return identifiers

    async def fetch_question_content(self, identifier: QuestionIdentifier) -> QuestionDetail:
        """
        Fetch full content for an identifier.

        Metadata carried by the identifier is kept when the content has none.
        """
        if identifier.id_type is IdType.EXTERNAL:
            question = await self._fetch_by_external_id(identifier.id)
        else:
            question = await self._fetch_by_ibn(identifier.id)

        if question.metadata is None and identifier.metadata is not None:
            logger.debug(f"Preserving metadata from identifier for question {identifier.id}")
            question = _with_metadata(question, identifier)
        return question

    async def _fetch_by_external_id(self, external_id: str) -> QuestionDetail:
        context = f"question details for external_id {external_id}"
        payload = await self._request(
            "POST",
            f"{self.config.qbank_url}/pdf-download",
            context=context,
            json={"external_ids": [external_id]},
        )
        record = _first_record(payload, context)
        available = [key for key in METADATA_KEYS if key in record]
        logger.debug(f"Available metadata fields for {external_id}: {available}")
        return question_from_payload(record)

    async def _fetch_by_ibn(self, ibn: str) -> QuestionDetail:
        context = f"question details for ibn {ibn}"
        payload = await self._request(
            "GET",
            f"{self.config.disclosed_url}/{ibn}.json",
            context=context,
        )
        record = _first_record(payload, context)
        return question_from_payload(normalize_disclosed_item(record))


def _first_record(payload: Any, context: str) -> Dict[str, Any]:
    if not isinstance(payload, list) or not payload:
        raise DataError(f"Empty response for {context}")
    record = payload[0]
    if not isinstance(record, dict):
        raise DataError(f"Invalid record in response for {context}")
    return record


def _with_metadata(question: QuestionDetail, identifier: QuestionIdentifier) -> QuestionDetail:
    return replace(question, metadata=identifier.metadata)
