from __future__ import annotations

import re

import ulid

SESSION_ID_RE = re.compile(r"^ps_[0-9A-Z]{26}$")
RESPONSE_ID_RE = re.compile(r"^pr_[0-9A-Z]{26}$")


def session_id() -> str:
    return f"ps_{ulid.new()}"


def response_id() -> str:
    return f"pr_{ulid.new()}"


def is_session_id(value: str) -> bool:
    return bool(SESSION_ID_RE.fullmatch(value))


def is_response_id(value: str) -> bool:
    return bool(RESPONSE_ID_RE.fullmatch(value))
