import pytest

from shared.errors import ServiceError
from player.optimistic import OptimisticUpdate, UpdateStatus


class Counter:
    def __init__(self):
        self.value = 0

    def inc(self):
        self.value += 1

    def dec(self):
        self.value -= 1


@pytest.mark.asyncio
async def test_commit_keeps_local_change():
    counter = Counter()
    update = OptimisticUpdate(counter.inc, counter.dec, "increment")

    async def remote():
        assert counter.value == 1
        return "ok"

    assert await update.run(remote) == "ok"
    assert counter.value == 1
    assert update.status is UpdateStatus.COMMITTED
    assert not update.is_pending


@pytest.mark.asyncio
async def test_service_error_rolls_back_and_reraises():
    counter = Counter()
    update = OptimisticUpdate(counter.inc, counter.dec, "increment")

    async def remote():
        raise ServiceError("rejected", 400)

    with pytest.raises(ServiceError):
        await update.run(remote)
    assert counter.value == 0
    assert update.status is UpdateStatus.ROLLED_BACK
    assert update.error.status == 400


@pytest.mark.asyncio
async def test_update_runs_once():
    counter = Counter()
    update = OptimisticUpdate(counter.inc, counter.dec)

    async def remote():
        return None

    await update.run(remote)
    with pytest.raises(RuntimeError):
        await update.run(remote)
    assert counter.value == 1
