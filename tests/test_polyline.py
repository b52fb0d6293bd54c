import pytest

from courierwatch.errors import MalformedInput
from courierwatch.services.routing.google_client import decode_polyline


def test_decode_reference_polyline():
    points = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")

    assert [(p.latitude, p.longitude) for p in points] == [
        pytest.approx((38.5, -120.2)),
        pytest.approx((40.7, -120.95)),
        pytest.approx((43.252, -126.453)),
    ]


def test_decode_empty_string():
    assert decode_polyline("") == []


def test_decode_truncated_polyline_raises():
    with pytest.raises(MalformedInput):
        decode_polyline("_p~iF~ps|U_ulL")
