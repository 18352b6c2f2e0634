"""
Module: api.parsing

Purpose:
    Pure functions turning untyped question-bank records into models.
    Malformed records degrade to defaults or to None; nothing here raises
    for bad record content.

Key Functions:
    - extract_metadata(): Optional QuestionMetadata from a record
    - identifier_from_record(): Optional QuestionIdentifier from a record
    - live_list_from_payload(): LiveQuestionList from the lookup response
    - normalize_disclosed_item(): Disclosed (IBN) item -> standard record
    - question_from_payload(): QuestionDetail from a standard record

Dependencies:
    - core.models: Target types and the metadata default table

Used By:
    - api.client: Response parsing
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from sat_quiz.core.models import (
    AnswerOption,
    IdType,
    LiveQuestionList,
    QuestionDetail,
    QuestionIdentifier,
    QuestionMetadata,
    SubjectType,
)
from sat_quiz.core.models.identifiers import METADATA_FIELDS

logger = logging.getLogger(__name__)

__all__ = [
    "METADATA_KEYS",
    "extract_metadata",
    "identifier_from_record",
    "live_list_from_payload",
    "normalize_disclosed_item",
    "question_from_payload",
]

METADATA_KEYS = tuple(METADATA_FIELDS.keys())

# At least one of these must hold a non-empty value for metadata to be kept
_ESSENTIAL_METADATA_KEYS = ("skill_desc", "primary_class_cd_desc", "primary_class_cd")

_RATIONALE_KEY_RE = re.compile(r"The correct answer is ((?:(?!\.\s).)+)\.\s")

DEFAULT_RATIONALE = "No rationale provided."


def _has_text(value: Any) -> bool:
    return value is not None and str(value) != ""


def extract_metadata(record: Mapping[str, Any]) -> Optional[QuestionMetadata]:
    """
    Extract classification metadata from a raw record.

    Returns None when no metadata key is present, or when every essential
    field (skill description, category description, category code) is null
    or empty.

    Example:
        >>> extract_metadata({"primary_class_cd": "H", "difficulty": None}).difficulty
        'M'
        >>> extract_metadata({"external_id": "abc"}) is None
        True
    """
    if not any(key in record for key in METADATA_KEYS):
        logger.debug("No metadata fields found in record")
        return None

    if not any(_has_text(record.get(key)) for key in _ESSENTIAL_METADATA_KEYS):
        logger.debug("Metadata fields present but all empty or null")
        return None

    return QuestionMetadata.from_dict(dict(record))


def identifier_from_record(
    record: Mapping[str, Any],
    subject: SubjectType,
) -> Optional[QuestionIdentifier]:
    """
    Build an identifier from an identifier-list record.

    ``external_id`` wins over ``ibn``. A record with neither (or only blank
    values) yields None, which signals absence rather than an error.
    """
    if not isinstance(record, Mapping) or not record:
        logger.warning("Empty or non-object record skipped")
        return None

    ident: Optional[str] = None
    id_type: Optional[IdType] = None
    if record.get("external_id") is not None:
        ident = str(record["external_id"]).strip()
        id_type = IdType.EXTERNAL
    elif record.get("ibn") is not None:
        ident = str(record["ibn"]).strip()
        id_type = IdType.IBN

    if not ident or id_type is None:
        logger.warning("No valid identifier found in record")
        return None

    return QuestionIdentifier(
        id=ident,
        id_type=id_type,
        subject_type=subject,
        metadata=extract_metadata(record),
    )


def live_list_from_payload(payload: Mapping[str, Any]) -> LiveQuestionList:
    """Parse the lookup response into per-subject live identifiers."""

    def _ids(key: str, subject: SubjectType) -> tuple[QuestionIdentifier, ...]:
        values = payload.get(key) or []
        if not isinstance(values, list):
            return ()
        return tuple(
            QuestionIdentifier(str(v).strip(), IdType.EXTERNAL, subject)
            for v in values
            if v is not None and str(v).strip()
        )

    return LiveQuestionList(
        math_ids=_ids("mathLiveItems", SubjectType.MATH),
        english_ids=_ids("readingLiveItems", SubjectType.ENGLISH),
    )


def normalize_disclosed_item(item: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert a disclosed (IBN) item to the standard question record shape.

    The question type is the answer style ("multiple choice" -> "mcq"),
    or inferred from whether choices exist when no style is given.
    """
    answer = item.get("answer")
    answer_data: Mapping[str, Any] = answer if isinstance(answer, Mapping) else {}

    options: List[Dict[str, Any]] = []
    choices = answer_data.get("choices")
    if isinstance(choices, Mapping):
        for choice_id, choice in choices.items():
            body = choice.get("body") if isinstance(choice, Mapping) else None
            options.append({"id": choice_id, "content": body or ""})

    style = answer_data.get("style")
    style_text = str(style).lower() if style is not None else ""
    if style_text == "multiple choice":
        question_type = "mcq"
    elif style_text:
        question_type = style_text
    else:
        question_type = "mcq" if options else "spr"

    correct = answer_data.get("correct_choice")
    return {
        "externalid": item.get("item_id") or item.get("ibn") or "",
        "stimulus": item.get("body") or "",
        "stem": item.get("prompt") or "",
        "answerOptions": options,
        "keys": [correct] if correct is not None else [],
        "rationale": answer_data.get("rationale") or DEFAULT_RATIONALE,
        "type": question_type,
    }


def _correct_key(payload: Mapping[str, Any]) -> str:
    keys = payload.get("keys")
    if isinstance(keys, list) and keys and keys[0] is not None:
        key = str(keys[0])
        if key:
            return key

    rationale = payload.get("rationale")
    if rationale is None:
        return ""
    match = _RATIONALE_KEY_RE.search(str(rationale))
    return match.group(1).strip() if match else ""


def question_from_payload(payload: Mapping[str, Any]) -> QuestionDetail:
    """
    Build question content from a standard record.

    Non-object answer options are dropped. When ``keys`` is absent the key
    is recovered from "The correct answer is X. " in the rationale.
    """
    raw_options = payload.get("answerOptions")
    options: List[AnswerOption] = []
    if isinstance(raw_options, list):
        for item in raw_options:
            if not isinstance(item, Mapping):
                continue
            options.append(
                AnswerOption(
                    id="" if item.get("id") is None else str(item["id"]),
                    content="" if item.get("content") is None else str(item["content"]),
                )
            )

    question_type = payload.get("type")
    rationale = payload.get("rationale")
    return QuestionDetail(
        external_id="" if payload.get("externalid") is None else str(payload["externalid"]),
        stimulus="" if payload.get("stimulus") is None else str(payload["stimulus"]),
        stem="" if payload.get("stem") is None else str(payload["stem"]),
        answer_options=tuple(options),
        correct_key=_correct_key(payload),
        rationale=DEFAULT_RATIONALE if rationale is None else str(rationale),
        question_type="mcq" if question_type is None else str(question_type).lower(),
        metadata=(
            QuestionMetadata.from_dict(dict(payload))
            if any(key in payload for key in METADATA_KEYS)
            else None
        ),
    )
