from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidParametersError

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


def _split_fields(raw: str | Sequence[str] | None) -> tuple[str, ...]:
    if raw is None:
        return ()
    parts = raw.split(",") if isinstance(raw, str) else list(raw)

    out: list[str] = []
    for part in parts:
        if not isinstance(part, str):
            raise InvalidParametersError("fields must be attribute names")
        name = part.strip()
        if name and name not in out:
            out.append(name)
    return tuple(out)


def _parse_bool(name: str, value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise InvalidParametersError(f"{name} must be a boolean")


def _parse_limit(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParametersError("limit must be an integer")
    if value <= 0:
        raise InvalidParametersError("limit must be > 0")
    return value


@dataclass(frozen=True)
class Options:
    """Caller-facing read options.

    ``include_fields=True`` pushes ``fields`` down as a store projection.
    ``include_fields=False`` fetches everything and strips ``fields`` from the
    result afterwards, since the store projection can only include.
    """

    fields: tuple[str, ...] = field(default=())
    include_fields: bool = False
    page: str | None = None
    limit: int | None = None
    scan_forward: bool = True
    index_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _split_fields(self.fields))
        object.__setattr__(self, "include_fields", _parse_bool("include_fields", self.include_fields, False))
        object.__setattr__(self, "scan_forward", _parse_bool("scan_forward", self.scan_forward, True))
        object.__setattr__(self, "limit", _parse_limit(self.limit))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Options:
        page = raw.get("page")
        index_name = raw.get("index_name")
        return cls(
            fields=raw.get("fields"),
            include_fields=_parse_bool("include_fields", raw.get("include_fields"), False),
            page=str(page) if page else None,
            limit=raw.get("limit"),
            scan_forward=_parse_bool("scan_forward", raw.get("scan_forward"), True),
            index_name=str(index_name) if index_name else None,
        )

    @property
    def excludes_fields(self) -> bool:
        return bool(self.fields) and not self.include_fields


def coerce_options(options: Options | Mapping[str, Any] | None) -> Options:
    if options is None:
        return Options()
    if isinstance(options, Options):
        return options
    if isinstance(options, Mapping):
        return Options.from_mapping(options)
    raise InvalidParametersError(f"unsupported options type: {type(options).__name__}")


def build_options(options: Options) -> dict[str, Any]:
    if not options.fields or not options.include_fields:
        return {}

    names: dict[str, str] = {}
    refs: list[str] = []
    for i, field_name in enumerate(options.fields):
        ref = f"#p{i}"
        names[ref] = field_name
        refs.append(ref)
    return {"ProjectionExpression": ",".join(refs), "ExpressionAttributeNames": names}


def refine_item(item: Mapping[str, Any] | None, options: Options) -> dict[str, Any] | None:
    if item is None:
        return None
    if not options.excludes_fields:
        return dict(item)
    excluded = set(options.fields)
    return {k: v for k, v in item.items() if k not in excluded}


def refine_items(items: Sequence[Mapping[str, Any]], options: Options) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for item in items:
        refined = refine_item(item, options)
        if refined is not None:
            out.append(refined)
    return out
