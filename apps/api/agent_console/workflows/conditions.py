"""Transition condition mini-language.

Conditions are stored on transitions as plain strings (``always``,
``timeout:10s``, ``variable_equals:plan=gold``, ``intent:no_match``). These
strings are the wire contract with the call runtime, so the codec here is
lenient on the way in and canonical on the way out: ``decode`` never raises
and falls back to ``always`` for anything it does not recognise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class ConditionKind(str, Enum):
    ALWAYS = "always"
    USER_RESPONDED = "user_responded"
    TIMEOUT = "timeout"
    MAX_TURNS = "max_turns"
    CONTAINS = "contains"
    VARIABLES_EXTRACTED = "variables_extracted"
    EXTRACTION_FAILED = "extraction_failed"
    VARIABLE_EQUALS = "variable_equals"
    INTENT = "intent"
    API_SUCCESS = "api_success"
    API_FAILED = "api_failed"
    API_STATUS = "api_status"
    API_RESPONSE_CONTAINS = "api_response_contains"


INTENT_FALLBACK = "no_match"
TIMEOUT_SUFFIX = "s"


@dataclass(frozen=True)
class ParsedCondition:
    kind: ConditionKind
    parameter: str = ""

    def encode(self) -> str:
        return encode_condition(self.kind, self.parameter)


@dataclass(frozen=True)
class ConditionSpec:
    kind: ConditionKind
    display_name: str
    description: str
    has_parameter: bool
    applicable_to: Tuple[str, ...]
    parameter_type: Optional[str] = None
    parameter_label: str = ""
    parameter_placeholder: str = ""
    parameter_suffix: str = ""

    def as_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "display_name": self.display_name,
            "description": self.description,
            "has_parameter": self.has_parameter,
            "parameter_type": self.parameter_type,
            "parameter_label": self.parameter_label,
            "parameter_placeholder": self.parameter_placeholder,
            "parameter_suffix": self.parameter_suffix,
            "applicable_to": list(self.applicable_to),
        }


CONDITION_SPECS: Tuple[ConditionSpec, ...] = (
    ConditionSpec(
        kind=ConditionKind.ALWAYS,
        display_name="Always",
        description="Immediate transition",
        has_parameter=False,
        applicable_to=("standard", "retrieve_variable"),
    ),
    ConditionSpec(
        kind=ConditionKind.USER_RESPONDED,
        display_name="User Responded",
        description="After user speaks",
        has_parameter=False,
        applicable_to=("standard",),
    ),
    ConditionSpec(
        kind=ConditionKind.TIMEOUT,
        display_name="Timeout",
        description="After specified time",
        has_parameter=True,
        applicable_to=("standard", "retrieve_variable"),
        parameter_type="number",
        parameter_label="Seconds",
        parameter_placeholder="10",
        parameter_suffix=TIMEOUT_SUFFIX,
    ),
    ConditionSpec(
        kind=ConditionKind.MAX_TURNS,
        display_name="Max Turns",
        description="After N exchanges",
        has_parameter=True,
        applicable_to=("standard",),
        parameter_type="number",
        parameter_label="Turn Count",
        parameter_placeholder="5",
    ),
    ConditionSpec(
        kind=ConditionKind.CONTAINS,
        display_name="Contains Keyword",
        description="If response contains keyword",
        has_parameter=True,
        applicable_to=("standard",),
        parameter_type="string",
        parameter_label="Keyword",
        parameter_placeholder="goodbye",
    ),
    ConditionSpec(
        kind=ConditionKind.VARIABLES_EXTRACTED,
        display_name="Variables Extracted",
        description="All variables successfully extracted",
        has_parameter=True,
        applicable_to=("retrieve_variable",),
        parameter_type="variables",
        parameter_label="Variable Names",
        parameter_placeholder="name,email,phone",
    ),
    ConditionSpec(
        kind=ConditionKind.EXTRACTION_FAILED,
        display_name="Extraction Failed",
        description="Any variable missing or null",
        has_parameter=True,
        applicable_to=("retrieve_variable",),
        parameter_type="variables",
        parameter_label="Variable Names",
        parameter_placeholder="name,email,phone",
    ),
    ConditionSpec(
        kind=ConditionKind.VARIABLE_EQUALS,
        display_name="Variable Equals",
        description="Deterministic variable comparison",
        has_parameter=True,
        applicable_to=("standard", "retrieve_variable"),
        parameter_type="variable_value_pair",
        parameter_label="Variable & Expected Value",
        parameter_placeholder="var_name=value",
    ),
    ConditionSpec(
        kind=ConditionKind.INTENT,
        display_name="Intent Match",
        description="LLM intent classification",
        has_parameter=True,
        applicable_to=("standard",),
        parameter_type="intent",
        parameter_label="Intent ID",
        parameter_placeholder=f"wants_help or {INTENT_FALLBACK}",
    ),
    ConditionSpec(
        kind=ConditionKind.API_SUCCESS,
        display_name="API Success",
        description="API returned 2xx status",
        has_parameter=False,
        applicable_to=("api_call",),
    ),
    ConditionSpec(
        kind=ConditionKind.API_FAILED,
        display_name="API Failed",
        description="API error, timeout, or non-2xx",
        has_parameter=False,
        applicable_to=("api_call",),
    ),
    ConditionSpec(
        kind=ConditionKind.API_STATUS,
        display_name="API Status Code",
        description="Match specific HTTP status",
        has_parameter=True,
        applicable_to=("api_call",),
        parameter_type="number",
        parameter_label="Status Code",
        parameter_placeholder="404",
    ),
    ConditionSpec(
        kind=ConditionKind.API_RESPONSE_CONTAINS,
        display_name="Response Contains",
        description="Response body contains text",
        has_parameter=True,
        applicable_to=("api_call",),
        parameter_type="string",
        parameter_label="Search Text",
        parameter_placeholder="error",
    ),
)

_SPECS_BY_KIND: Dict[ConditionKind, ConditionSpec] = {item.kind: item for item in CONDITION_SPECS}
_KINDS_BY_NAME: Dict[str, ConditionKind] = {item.value: item for item in ConditionKind}

DEFAULT_CONDITION = ParsedCondition(ConditionKind.ALWAYS, "")


def conditions_for_node_type(node_type: Optional[str]) -> List[ConditionSpec]:
    if not node_type:
        return list(CONDITION_SPECS)
    return [item for item in CONDITION_SPECS if node_type in item.applicable_to]


def decode_condition(text: Optional[str]) -> ParsedCondition:
    if not text:
        return DEFAULT_CONDITION

    raw = str(text)
    colon = raw.find(":")
    if colon == -1:
        kind = _KINDS_BY_NAME.get(raw)
        if kind is None:
            logger.debug("Unrecognized condition %r decoded as always.", raw)
            return DEFAULT_CONDITION
        return ParsedCondition(kind, "")

    kind = _KINDS_BY_NAME.get(raw[:colon])
    if kind is None:
        logger.debug("Unrecognized condition kind in %r decoded as always.", raw)
        return DEFAULT_CONDITION

    if not _SPECS_BY_KIND[kind].has_parameter:
        return ParsedCondition(kind, "")

    parameter = raw[colon + 1 :]
    if kind is ConditionKind.TIMEOUT and parameter.endswith(TIMEOUT_SUFFIX):
        parameter = parameter[: -len(TIMEOUT_SUFFIX)]
    return ParsedCondition(kind, parameter)


def encode_condition(kind: Union[ConditionKind, str], parameter: Optional[str] = "") -> str:
    resolved = _resolve_kind(kind)
    if resolved is None:
        logger.debug("Unknown condition kind %r encoded as always.", kind)
        return ConditionKind.ALWAYS.value

    spec = _SPECS_BY_KIND[resolved]
    value = "" if parameter is None else str(parameter)
    if not spec.has_parameter or not value:
        return resolved.value
    if resolved is ConditionKind.TIMEOUT:
        return f"{resolved.value}:{value}{TIMEOUT_SUFFIX}"
    return f"{resolved.value}:{value}"


def is_recognized_condition(text: Optional[str]) -> bool:
    """True when ``text`` decodes without the ``always`` fallback."""
    if not text:
        return False
    raw = str(text)
    name = raw.split(":", 1)[0]
    return name in _KINDS_BY_NAME


def describe_condition(text: Optional[str]) -> str:
    parsed = decode_condition(text)
    spec = _SPECS_BY_KIND[parsed.kind]
    if not spec.has_parameter or not parsed.parameter:
        return spec.display_name
    return f"{spec.display_name} ({parsed.parameter}{spec.parameter_suffix})"


def split_variable_names(parameter: str) -> List[str]:
    return [item.strip() for item in str(parameter or "").split(",") if item.strip()]


def split_variable_pair(parameter: str) -> Tuple[str, str]:
    name, _, value = str(parameter or "").partition("=")
    return name.strip(), value.strip()


def _resolve_kind(kind: Union[ConditionKind, str, None]) -> Optional[ConditionKind]:
    if isinstance(kind, ConditionKind):
        return kind
    if kind is None:
        return None
    return _KINDS_BY_NAME.get(str(kind))
