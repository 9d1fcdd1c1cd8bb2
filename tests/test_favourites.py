import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from shared.errors import ServiceError
from shared.models import UserRecord
from player.favourites_manager import FavouritesManager


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def favourites(api, bridge):
    manager = FavouritesManager(api, bridge)
    manager.load(["B"], "alice")
    return manager


@pytest.mark.asyncio
async def test_local_only_without_user(bridge):
    manager = FavouritesManager(None, bridge)
    assert await manager.toggle("A") is True
    assert manager.get_all() == ["A"]
    assert bridge.load().liked == {"A"}


@pytest.mark.asyncio
async def test_like_commits_server_view(favourites, api, bridge):
    api.toggle_like.return_value = UserRecord("alice", liked_songs=["A", "B"])

    assert await favourites.toggle("A") is True

    api.toggle_like.assert_called_once_with("alice", "A", True)
    assert favourites.get_all() == ["A", "B"]
    assert bridge.load().liked == {"A", "B"}


@pytest.mark.asyncio
async def test_unlike(favourites, api):
    api.toggle_like.return_value = UserRecord("alice", liked_songs=[])
    assert await favourites.toggle("B") is False
    api.toggle_like.assert_called_once_with("alice", "B", False)
    assert favourites.size() == 0


@pytest.mark.asyncio
async def test_rejected_like_reverts(favourites, api, bridge):
    api.toggle_like.side_effect = ServiceError("Network error: timeout")

    with pytest.raises(ServiceError):
        await favourites.toggle("A")

    assert not favourites.is_favourite("A")
    assert favourites.get_all() == ["B"]
    assert bridge.load().liked == {"B"}
    assert not favourites.is_pending("A")


@pytest.mark.asyncio
async def test_state_is_applied_before_server_answers(favourites, api):
    release = threading.Event()
    seen = {}

    def slow_toggle(username, track_id, liking):
        release.wait(5)
        return UserRecord(username, liked_songs=["A", "B"])

    api.toggle_like.side_effect = slow_toggle
    task = asyncio.ensure_future(favourites.toggle("A"))
    await asyncio.sleep(0.01)
    seen["liked"] = favourites.is_favourite("A")
    seen["pending"] = favourites.is_pending("A")
    release.set()
    await task

    assert seen == {"liked": True, "pending": True}
    assert not favourites.is_pending("A")


@pytest.mark.asyncio
async def test_sync_replaces_with_server_set(favourites, api):
    api.get_user.return_value = UserRecord("alice", liked_songs=["C"])
    assert await favourites.sync() is True
    assert favourites.get_all() == ["C"]


@pytest.mark.asyncio
async def test_sync_failure_keeps_local_set(favourites, api):
    api.get_user.side_effect = ServiceError("Network error")
    assert await favourites.sync() is False
    assert favourites.get_all() == ["B"]


@pytest.mark.asyncio
async def test_sync_without_user(bridge):
    assert await FavouritesManager(MagicMock(), bridge).sync() is False


def test_clear_forgets_user(favourites):
    changes = []
    favourites.add_change_callback(lambda: changes.append(1))
    favourites.clear()
    assert favourites.username is None
    assert favourites.size() == 0
    assert changes == [1]
