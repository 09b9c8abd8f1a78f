"""Redis pool lifecycle."""

import pytest

import nurnexus.redis_client as redis_client


@pytest.fixture(autouse=True)
def _reset_pool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(redis_client, "_pool", None)


async def test_empty_url_leaves_redis_disabled() -> None:
    await redis_client.init_redis("")
    assert redis_client.get_redis_or_none() is None


async def test_init_and_close() -> None:
    await redis_client.init_redis("redis://localhost:6379/15")
    assert redis_client.get_redis_or_none() is not None
    # from_url connects lazily; closing never touches the server
    await redis_client.close_redis()
    assert redis_client.get_redis_or_none() is None
