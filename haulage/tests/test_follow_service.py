import asyncio
import pytest

from haulage.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from haulage.db.repository import FOLLOWERS, FOLLOWING


def users(repository):
    return repository.data["users"]


async def edge_pair(repository, follower_id, following_id):
    """Whether the forward and backward records of an edge are stored"""
    forward = await repository.edge_exists(follower_id, following_id)
    backward = follower_id in await repository.get_edges(following_id, FOLLOWERS)
    return forward, backward


@pytest.mark.asyncio
async def test_follow_creates_both_edges_and_counts(follow_service, repository, clock):
    """Follow writes the forward and backward edge with one timestamp"""
    result = await follow_service.follow("alice", "bob")

    assert result.follower_count == 1
    assert result.following_count == 1

    stamp = clock().isoformat()
    assert users(repository)["alice"]["following"] == {"bob": {"followedAt": stamp}}
    assert users(repository)["bob"]["followers"] == {"alice": {"followedAt": stamp}}
    assert users(repository)["bob"]["stats"] == {"followers": 1, "following": 0, "views": 0}
    assert users(repository)["alice"]["stats"] == {"followers": 0, "following": 1, "views": 0}


@pytest.mark.asyncio
async def test_follow_uses_a_single_multi_path_write(follow_service, repository):
    await follow_service.follow("alice", "bob")
    assert repository.write_count == 1


@pytest.mark.asyncio
async def test_follow_trims_identifiers(follow_service, repository):
    await follow_service.follow("  alice ", "bob\n")
    assert await repository.edge_exists("alice", "bob")


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", ["alice", "ghost"])
async def test_follow_self_is_rejected(follow_service, user_id):
    """Self-follow fails as validation whether or not the user exists"""
    with pytest.raises(ValidationError, match="Cannot follow yourself"):
        await follow_service.follow(user_id, f" {user_id} ")


@pytest.mark.asyncio
@pytest.mark.parametrize("follower, following", [
    ("", "bob"),
    ("   ", "bob"),
    ("alice", None),
    (42, "bob"),
])
async def test_follow_rejects_invalid_ids(follow_service, follower, following):
    with pytest.raises(ValidationError):
        await follow_service.follow(follower, following)


@pytest.mark.asyncio
async def test_follow_unknown_user(follow_service, repository):
    with pytest.raises(NotFoundError, match="One or both users not found"):
        await follow_service.follow("alice", "ghost")
    assert repository.write_count == 0


@pytest.mark.asyncio
async def test_follow_twice_conflicts(follow_service, repository):
    await follow_service.follow("alice", "bob")

    with pytest.raises(ConflictError, match="Already following"):
        await follow_service.follow("alice", "bob")

    assert users(repository)["bob"]["stats"]["followers"] == 1


@pytest.mark.asyncio
async def test_follow_preserves_other_stats_fields(follow_service, repository):
    users(repository)["bob"]["stats"] = {"followers": 5, "views": 7, "badge": "gold"}

    result = await follow_service.follow("alice", "bob")

    assert result.follower_count == 6
    assert users(repository)["bob"]["stats"] == {
        "followers": 6,
        "following": 0,
        "views": 7,
        "badge": "gold",
    }


@pytest.mark.asyncio
async def test_unfollow_without_follow_fails(follow_service, repository):
    with pytest.raises(ValidationError, match="Not following this user"):
        await follow_service.unfollow("alice", "bob")
    assert repository.write_count == 0


@pytest.mark.asyncio
async def test_unfollow_unknown_user(follow_service):
    with pytest.raises(NotFoundError):
        await follow_service.unfollow("ghost", "bob")


@pytest.mark.asyncio
@pytest.mark.parametrize("follower, following", [
    ("", "bob"),
    ("  ", "bob"),
    (42, "bob"),
    ("alice", None),
])
async def test_unfollow_rejects_invalid_ids(follow_service, repository, follower, following):
    with pytest.raises(ValidationError, match="is required and must be a valid string"):
        await follow_service.unfollow(follower, following)
    assert repository.write_count == 0


@pytest.mark.asyncio
async def test_unfollow_trims_identifiers(follow_service, repository):
    await follow_service.follow("alice", "bob")

    result = await follow_service.unfollow(" alice ", "bob ")

    assert (result.follower_count, result.following_count) == (0, 0)
    assert not await repository.edge_exists("alice", "bob")


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", ["alice/", "bob/stats", "a.b", "a#b", "a$b", "a[b", "a]b"])
async def test_ids_that_are_not_single_keys_are_rejected(follow_service, repository, user_id):
    with pytest.raises(ValidationError, match="contains invalid characters"):
        await follow_service.follow("alice", user_id)
    with pytest.raises(ValidationError, match="contains invalid characters"):
        await follow_service.unfollow(user_id, "bob")
    with pytest.raises(ValidationError, match="contains invalid characters"):
        await follow_service.record_view(user_id)
    with pytest.raises(ValidationError, match="contains invalid characters"):
        await follow_service.get_stats("bob", viewer_id=user_id)
    assert repository.write_count == 0


@pytest.mark.asyncio
async def test_trailing_slash_cannot_sneak_a_self_follow(follow_service, repository):
    with pytest.raises(ValidationError):
        await follow_service.follow("alice", "alice/")

    assert "following" not in users(repository)["alice"]
    assert "followers" not in users(repository)["alice"]


@pytest.mark.asyncio
async def test_following_a_nested_path_leaves_stats_intact(follow_service, repository):
    await follow_service.record_view("bob")

    with pytest.raises(ValidationError):
        await follow_service.follow("alice", "bob/stats")

    assert users(repository)["bob"]["stats"] == {"followers": 0, "following": 0, "views": 1}
    stats = await follow_service.get_stats("bob")
    assert stats.stats.views == 1
    assert (await follow_service.follow("alice", "bob")).follower_count == 1


@pytest.mark.asyncio
async def test_follow_then_unfollow_restores_counts(follow_service, repository):
    users(repository)["bob"]["stats"] = {"followers": 3, "following": 2, "views": 10}
    users(repository)["alice"]["stats"] = {"followers": 1, "following": 4, "views": 0}

    await follow_service.follow("alice", "bob")
    result = await follow_service.unfollow("alice", "bob")

    assert result.follower_count == 3
    assert result.following_count == 4
    assert users(repository)["bob"]["stats"] == {"followers": 3, "following": 2, "views": 10}
    assert users(repository)["alice"]["stats"] == {"followers": 1, "following": 4, "views": 0}

    # Empty edge subtrees disappear from the tree
    assert "following" not in users(repository)["alice"]
    assert "followers" not in users(repository)["bob"]


@pytest.mark.asyncio
async def test_unfollow_counts_never_go_below_zero(follow_service, repository):
    """An edge whose counters were never written still unfollows cleanly"""
    users(repository)["alice"]["following"] = {"bob": {"followedAt": "2024-01-01T00:00:00+00:00"}}
    users(repository)["bob"]["followers"] = {"alice": {"followedAt": "2024-01-01T00:00:00+00:00"}}

    result = await follow_service.unfollow("alice", "bob")

    assert result.follower_count == 0
    assert result.following_count == 0


@pytest.mark.asyncio
async def test_record_view_counts_every_call(follow_service, repository):
    assert await follow_service.record_view("carol") == 1
    await follow_service.record_view("carol")
    assert await follow_service.record_view("carol") == 3
    assert users(repository)["carol"]["stats"]["views"] == 3


@pytest.mark.asyncio
async def test_record_view_keeps_follow_counts(follow_service, repository):
    users(repository)["carol"]["stats"] = {"followers": 2, "following": 1, "views": 40}

    assert await follow_service.record_view("carol") == 41
    assert users(repository)["carol"]["stats"] == {"followers": 2, "following": 1, "views": 41}


@pytest.mark.asyncio
async def test_record_view_validation(follow_service):
    with pytest.raises(ValidationError):
        await follow_service.record_view("  ")
    with pytest.raises(NotFoundError):
        await follow_service.record_view("ghost")


@pytest.mark.asyncio
async def test_stats_scenario(follow_service):
    await follow_service.follow("alice", "bob")

    stats = await follow_service.get_stats("bob", viewer_id="alice")
    assert stats.stats.model_dump() == {"followers": 1, "following": 0, "views": 0}
    assert stats.is_following is True

    result = await follow_service.unfollow("alice", "bob")
    assert (result.follower_count, result.following_count) == (0, 0)

    stats = await follow_service.get_stats("bob", viewer_id="alice")
    assert stats.is_following is False


@pytest.mark.asyncio
async def test_stats_defaults_when_absent(follow_service):
    stats = await follow_service.get_stats("carol")
    assert stats.user_id == "carol"
    assert stats.stats.model_dump() == {"followers": 0, "following": 0, "views": 0}
    assert stats.is_following is False


@pytest.mark.asyncio
async def test_stats_viewer_handling(follow_service):
    with pytest.raises(NotFoundError, match="Current user not found"):
        await follow_service.get_stats("bob", viewer_id="ghost")

    # Viewing your own stats, or a blank viewer, skips the viewer lookup
    assert (await follow_service.get_stats("bob", viewer_id="bob")).is_following is False
    assert (await follow_service.get_stats("bob", viewer_id="  ")).is_following is False


@pytest.mark.asyncio
async def test_stats_unknown_user(follow_service):
    with pytest.raises(NotFoundError, match="User not found"):
        await follow_service.get_stats("ghost")


@pytest.mark.asyncio
@pytest.mark.parametrize("user_id", ["", "   ", None])
async def test_stats_rejects_blank_user(follow_service, user_id):
    with pytest.raises(ValidationError, match="userId is required"):
        await follow_service.get_stats(user_id)


@pytest.mark.asyncio
async def test_concurrent_follows_race(follow_service, repository):
    """Both calls pass the existence check before either write lands.

    There is no transaction to stop this; both report success and the stored
    counter reflects only one of them.
    """
    first, second = await asyncio.gather(
        follow_service.follow("alice", "bob"),
        follow_service.follow("alice", "bob"),
    )

    assert first.follower_count == 1
    assert second.follower_count == 1
    assert repository.write_count == 2
    assert users(repository)["bob"]["stats"]["followers"] == 1


@pytest.mark.asyncio
async def test_partial_write_leaves_drift(follow_service, repository):
    """A store failure mid-write is surfaced and not rolled back"""
    repository.fail_after = 1

    with pytest.raises(StoreError):
        await follow_service.follow("alice", "bob")

    forward, backward = await edge_pair(repository, "alice", "bob")
    assert forward is True
    assert backward is False
    assert "stats" not in users(repository)["bob"]

    # The half-written edge now blocks a retry
    with pytest.raises(ConflictError):
        await follow_service.follow("alice", "bob")


@pytest.mark.asyncio
async def test_list_edges_newest_first(follow_service, clock):
    await follow_service.follow("alice", "carol")
    clock.advance(minutes=5)
    await follow_service.follow("bob", "carol")

    followers = await follow_service.list_edges("carol", FOLLOWERS)
    assert followers.total == 2
    assert followers.count == 2
    assert [edge.user_id for edge in followers.users] == ["bob", "alice"]

    following = await follow_service.list_edges("alice", FOLLOWING)
    assert [edge.user_id for edge in following.users] == ["carol"]


@pytest.mark.asyncio
async def test_list_edges_reports_counter_separately(follow_service, repository):
    users(repository)["carol"]["stats"] = {"followers": 9, "following": 0, "views": 0}

    followers = await follow_service.list_edges("carol", FOLLOWERS)
    assert followers.total == 9
    assert followers.count == 0


@pytest.mark.asyncio
async def test_get_profile(follow_service, repository):
    await follow_service.follow("alice", "bob")

    profile = await follow_service.get_profile("bob")
    assert profile["id"] == "bob"
    assert profile["displayName"] == "Bob"
    assert profile["stats"]["followers"] == 1
    assert "followers" not in profile

    profile = await follow_service.get_profile("carol")
    assert profile["stats"] == {"followers": 0, "following": 0, "views": 0}

    with pytest.raises(NotFoundError):
        await follow_service.get_profile("ghost")
