import asyncio

import pytest

from app.core.errors import ErrorKind, ServiceError
from app.services.abuse import AntiAbuseGuard
from app.services.locations import normalize_batch


def test_normalize_single_object_is_batch_of_one():
    assert normalize_batch({"uuid": "a"}) == [{"uuid": "a"}]


def test_normalize_list_and_empty_body():
    assert normalize_batch([{"uuid": "a"}, {"uuid": "b"}]) == [{"uuid": "a"}, {"uuid": "b"}]
    assert normalize_batch([]) == []
    assert normalize_batch(None) == []


@pytest.mark.parametrize("data", ["text", 42, [1, 2], [{"uuid": "a"}, "b"]])
def test_normalize_rejects_other_shapes(data):
    with pytest.raises(ServiceError) as exc_info:
        normalize_batch(data)
    assert exc_info.value.kind is ErrorKind.BAD_INPUT


def test_guard_flags_configured_organizations_only():
    guard = AntiAbuseGuard(frozenset({"flooder"}), size_bytes=10)
    assert guard.is_flagged("flooder")
    assert not guard.is_flagged("acme")


def test_deterrent_stream_has_exact_size():
    guard = AntiAbuseGuard(frozenset({"flooder"}), size_bytes=2500, chunk_size=1024)

    async def collect() -> bytes:
        return b"".join([chunk async for chunk in guard._stream()])

    body = asyncio.run(collect())
    assert len(body) == 2500
    assert body == bytes(2500)
