from __future__ import annotations

import base64
import binascii
import decimal
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from .document import DocumentCodec

SortOrder: TypeAlias = Literal["ASC", "DESC"]

_codec = DocumentCodec()


@dataclass(frozen=True)
class Page:
    items: list[dict[str, Any]]
    next_page: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"items": self.items}
        if self.next_page is not None:
            out["nextPage"] = self.next_page
        return out


@dataclass(frozen=True)
class Cursor:
    last_key: dict[str, Any]
    index: str | None = None
    sort: SortOrder | None = None


def _ensure_single_key_map(value: Any) -> tuple[str, Any]:
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError("attribute value must be a single-key map")
    (key, inner), *_ = value.items()
    return str(key), inner


def _av_to_json(av: Any) -> dict[str, Any]:
    kind, value = _ensure_single_key_map(av)

    if kind in {"S", "N"}:
        return {kind: value}
    if kind == "B":
        return {"B": base64.b64encode(bytes(value)).decode("ascii")}
    if kind in {"BOOL", "NULL"}:
        return {kind: value}
    if kind in {"SS", "NS"}:
        return {kind: list(value)}
    if kind == "BS":
        return {"BS": [base64.b64encode(bytes(v)).decode("ascii") for v in value]}
    if kind == "L":
        return {"L": [_av_to_json(v) for v in value]}
    if kind == "M":
        return {"M": {str(k): _av_to_json(value[k]) for k in sorted(value.keys())}}

    raise ValueError(f"unsupported attribute value type: {kind}")


def _ensure_number(value: str) -> None:
    try:
        number = decimal.Decimal(value)
    except decimal.InvalidOperation as err:
        raise ValueError("N value must be numeric") from err
    if not number.is_finite():
        raise ValueError("N value must be finite")


def _av_from_json(enc: Any) -> dict[str, Any]:
    kind, value = _ensure_single_key_map(enc)

    if kind in {"S", "N"}:
        if not isinstance(value, str):
            raise ValueError(f"{kind} value must be a string")
        if kind == "N":
            _ensure_number(value)
        return {kind: value}

    if kind == "B":
        if not isinstance(value, str):
            raise ValueError("B value must be a base64 string")
        return {"B": base64.b64decode(value, validate=True)}

    if kind == "BOOL":
        if not isinstance(value, bool):
            raise ValueError("BOOL value must be a boolean")
        return {"BOOL": value}

    if kind == "NULL":
        if value is not True:
            raise ValueError("NULL value must be true")
        return {"NULL": True}

    if kind in {"SS", "NS"}:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"{kind} value must be a list of strings")
        return {kind: value}

    if kind == "BS":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError("BS value must be a list of base64 strings")
        return {"BS": [base64.b64decode(v, validate=True) for v in value]}

    if kind == "L":
        if not isinstance(value, list):
            raise ValueError("L value must be a list")
        return {"L": [_av_from_json(v) for v in value]}

    if kind == "M":
        if not isinstance(value, dict):
            raise ValueError("M value must be a map")
        return {"M": {str(k): _av_from_json(v) for k, v in value.items()}}

    raise ValueError(f"unsupported attribute value type: {kind}")


def encode_cursor(
    last_key: Mapping[str, Any], *, index: str | None = None, sort: SortOrder | None = None
) -> str:
    """Encode a plain key map as an opaque, URL-safe page token.

    Values go through the typed wire form so numbers, binary and sets survive
    the round trip. Numbers must be ``int`` or ``Decimal``; a float would come
    back as a ``Decimal`` and no longer compare equal. Padding is stripped;
    ``decode_cursor`` restores it.
    """
    if not isinstance(last_key, Mapping):
        raise ValueError("last_key must be a map")
    if not last_key:
        return ""
    if any(isinstance(v, float) for v in last_key.values()):
        raise ValueError("last_key numbers must be int or Decimal")

    payload: dict[str, Any] = {
        "lastKey": {str(k): _av_to_json(_codec.serialize(last_key[k])) for k in sorted(last_key.keys())}
    }
    if index is not None:
        payload["index"] = index
    if sort is not None:
        payload["sort"] = sort

    data = json.dumps(payload, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> Cursor:
    raw = str(cursor or "").strip()
    if not raw:
        raise ValueError("cursor is empty")

    padding = "=" * (-len(raw) % 4)
    try:
        data = base64.urlsafe_b64decode(raw + padding).decode("utf-8")
        parsed = json.loads(data)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as err:
        raise ValueError("cursor is not a valid token") from err
    if not isinstance(parsed, dict):
        raise ValueError("cursor must decode to an object")

    last_key_raw = parsed.get("lastKey")
    if not isinstance(last_key_raw, dict) or not last_key_raw:
        raise ValueError("cursor lastKey is invalid")

    try:
        last_key = {str(k): _codec.deserialize(_av_from_json(v)) for k, v in last_key_raw.items()}
    except (binascii.Error, decimal.DecimalException) as err:
        raise ValueError("cursor lastKey is invalid") from err

    index = parsed.get("index")
    sort = parsed.get("sort")
    return Cursor(
        last_key=last_key,
        index=index if isinstance(index, str) else None,
        sort=sort if sort in {"ASC", "DESC"} else None,
    )


def build_pagination_key(
    items: Sequence[Mapping[str, Any]],
    last_evaluated_key: Mapping[str, Any] | None,
    key_attributes: Sequence[str],
    *,
    index: str | None = None,
    scan_forward: bool = True,
) -> str | None:
    if not last_evaluated_key:
        return None

    boundary: dict[str, Any] = dict(last_evaluated_key)
    if items:
        # anchor on the last returned item rather than the store marker
        last_item = items[-1]
        boundary = {}
        for name in key_attributes:
            if name in last_item:
                boundary[name] = last_item[name]
            elif name in last_evaluated_key:
                boundary[name] = last_evaluated_key[name]

    return encode_cursor(boundary, index=index, sort="ASC" if scan_forward else "DESC") or None
