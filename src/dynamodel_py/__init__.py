from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .client import DEFAULT_RETRY_POLICY, RetryPolicy, StoreClient, Verb
from .descriptor import EntityDescriptor, IndexDefinition, ModelDefinitionError, gsi, lsi
from .errors import (
    DynamodelError,
    InvalidCursorError,
    InvalidParametersError,
    ValidationError,
)
from .keys import build_key
from .model import Model
from .options import Options, build_options, refine_item, refine_items
from .query import Page, decode_cursor, encode_cursor
from .updates import UpdateAction, build_attribute_updates, build_increments
from .validation import PydanticSchema, Schema, is_valid

if TYPE_CHECKING:
    from .runtime import (
        AwsCallMetric,
        create_boto_config,
        instrument_client,
        is_lambda_environment,
        open_dynamodb_client,
    )

__version__ = "0.1.0"


def __getattr__(name: str) -> Any:
    # runtime pulls in aioboto3; load it only when asked for
    if name in {
        "AwsCallMetric",
        "create_boto_config",
        "instrument_client",
        "is_lambda_environment",
        "open_dynamodb_client",
    }:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AwsCallMetric",
    "DEFAULT_RETRY_POLICY",
    "DynamodelError",
    "EntityDescriptor",
    "IndexDefinition",
    "InvalidCursorError",
    "InvalidParametersError",
    "Model",
    "ModelDefinitionError",
    "Options",
    "Page",
    "PydanticSchema",
    "RetryPolicy",
    "Schema",
    "StoreClient",
    "UpdateAction",
    "ValidationError",
    "Verb",
    "__version__",
    "build_attribute_updates",
    "build_increments",
    "build_key",
    "build_options",
    "create_boto_config",
    "decode_cursor",
    "encode_cursor",
    "gsi",
    "instrument_client",
    "is_lambda_environment",
    "is_valid",
    "lsi",
    "open_dynamodb_client",
    "refine_item",
    "refine_items",
]
