import pytest

from gosbot.shared.utils import ensure_uuid_v4, generate_uuid_v4, is_uuid_v4


@pytest.mark.parametrize("value", [
    "3f2b8c1e-9a4d-4e7f-b123-0123456789ab",
    "3F2B8C1E-9A4D-4E7F-A123-0123456789AB",
    "00000000-0000-4000-8000-000000000000",
])
def test_valid_ids(value):
    assert is_uuid_v4(value)
    assert ensure_uuid_v4(value) == value


@pytest.mark.parametrize("value", [
    None,
    "",
    "not-a-uuid",
    "3f2b8c1e-9a4d-1e7f-b123-0123456789ab",   # version 1
    "3f2b8c1e-9a4d-4e7f-c123-0123456789ab",   # variant c
    "3f2b8c1e9a4d4e7fb1230123456789ab",       # no dashes
    " 3f2b8c1e-9a4d-4e7f-b123-0123456789ab",
    "3f2b8c1e-9a4d-4e7f-b123-0123456789ab\n",
])
def test_invalid_ids_are_replaced(value):
    assert not is_uuid_v4(value)
    replacement = ensure_uuid_v4(value)
    assert replacement != value
    assert is_uuid_v4(replacement)


def test_generated_ids_are_valid_and_distinct():
    ids = {generate_uuid_v4() for _ in range(200)}
    assert len(ids) == 200
    assert all(is_uuid_v4(i) for i in ids)

