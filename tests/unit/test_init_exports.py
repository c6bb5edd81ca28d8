from __future__ import annotations

import pytest

import dynamodel_py as dynamodel


def test_init_exposes_lazy_exports_via_getattr() -> None:
    assert callable(dynamodel.open_dynamodb_client)
    assert callable(dynamodel.instrument_client)
    assert callable(dynamodel.is_lambda_environment)
    assert callable(dynamodel.create_boto_config)
    assert dynamodel.AwsCallMetric.__name__ == "AwsCallMetric"


def test_init_unknown_attribute_raises() -> None:
    with pytest.raises(AttributeError):
        _ = dynamodel.not_a_thing


def test_all_names_resolve() -> None:
    for name in dynamodel.__all__:
        assert getattr(dynamodel, name) is not None
    assert dynamodel.__version__ == "0.1.0"
