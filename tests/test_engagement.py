"""Engagement service: like / bookmark toggles, view counting and comments."""

import pytest

from soundshare.errors import NotFound, Unauthorized, ValidationError
from soundshare.utils import new_id


@pytest.fixture
def author(make_user):
    return make_user()


@pytest.fixture
def fan(make_user):
    return make_user()


@pytest.fixture
def audio(author, make_audio):
    return make_audio(author["id"], title="Morning Meditation")


class TestToggleLike:
    def test_like_then_unlike_restores_state(self, state, audio, fan):
        before = state.audio_store.get_by_id(audio["id"])

        liked = state.engagement.toggle_like(audio["id"], fan["id"])
        assert liked.liked is True
        assert liked.total_likes == 1
        assert liked.user_id == fan["id"]

        unliked = state.engagement.toggle_like(audio["id"], fan["id"])
        assert unliked.liked is False
        assert unliked.total_likes == 0

        after = state.audio_store.get_by_id(audio["id"])
        assert after["likes"] == before["likes"] == []

    def test_like_is_mirrored_on_the_account(self, state, audio, fan):
        result = state.engagement.toggle_like(audio["id"], fan["id"])
        liked = result.user["likedAudios"]
        assert [e["audioId"] for e in liked] == [audio["id"]]
        assert liked[0]["audio"]["title"] == "Morning Meditation"

        result = state.engagement.toggle_like(audio["id"], fan["id"])
        assert result.user["likedAudios"] == []

    def test_count_matches_distinct_likers(self, state, audio, make_user):
        users = [make_user() for _ in range(3)]
        for u in users:
            state.engagement.toggle_like(audio["id"], u["id"])
        result = state.engagement.toggle_like(audio["id"], users[0]["id"])
        assert result.total_likes == 2
        assert sorted(state.audio_store.get_by_id(audio["id"])["likes"]) == sorted(u["id"] for u in users[1:])

    def test_store_add_like_is_idempotent(self, state, audio, fan):
        state.audio_store.add_like(audio["id"], fan["id"])
        updated = state.audio_store.add_like(audio["id"], fan["id"])
        assert updated["likes"] == [fan["id"]]

    def test_requires_user(self, state, audio):
        with pytest.raises(Unauthorized):
            state.engagement.toggle_like(audio["id"], None)

    def test_missing_audio(self, state, fan):
        with pytest.raises(NotFound):
            state.engagement.toggle_like(new_id(), fan["id"])

    def test_missing_user(self, state, audio):
        with pytest.raises(NotFound):
            state.engagement.toggle_like(audio["id"], new_id())

    def test_malformed_audio_id(self, state, fan):
        with pytest.raises(ValidationError):
            state.engagement.toggle_like("abc", fan["id"])


class TestToggleBookmark:
    def test_save_then_unsave(self, state, audio, fan):
        saved = state.engagement.toggle_bookmark(audio["id"], fan["id"])
        assert saved.bookmarked is True
        assert [e["audioId"] for e in saved.user["savedAudios"]] == [audio["id"]]
        assert saved.user["savedAudios"][0]["savedAt"]

        unsaved = state.engagement.toggle_bookmark(audio["id"], fan["id"])
        assert unsaved.bookmarked is False
        assert unsaved.user["savedAudios"] == []

    def test_bookmark_does_not_touch_likes(self, state, audio, fan):
        state.engagement.toggle_bookmark(audio["id"], fan["id"])
        assert state.audio_store.get_by_id(audio["id"])["likes"] == []

    def test_requires_user(self, state, audio):
        with pytest.raises(Unauthorized):
            state.engagement.toggle_bookmark(audio["id"], "")

    def test_missing_audio(self, state, fan):
        with pytest.raises(NotFound):
            state.engagement.toggle_bookmark(new_id(), fan["id"])


class TestRecordView:
    def test_counts_once_per_user(self, state, audio, fan):
        first = state.engagement.record_view(audio["id"], fan["id"])
        assert first.recorded is True
        assert first.audio["viewCount"] == 1
        assert [v["userId"] for v in first.audio["viewedBy"]] == [fan["id"]]

        for _ in range(4):
            again = state.engagement.record_view(audio["id"], fan["id"])
            assert again.recorded is False
            assert again.audio is None

        stored = state.audio_store.get_by_id(audio["id"])
        assert stored["view_count"] == 1
        assert len(stored["viewed_by"]) == 1

    def test_different_users_each_count(self, state, audio, make_user):
        for _ in range(3):
            state.engagement.record_view(audio["id"], make_user()["id"])
        stored = state.audio_store.get_by_id(audio["id"])
        assert stored["view_count"] == len(stored["viewed_by"]) == 3

    def test_author_view_counts(self, state, audio, author):
        assert state.engagement.record_view(audio["id"], author["id"]).recorded is True

    def test_requires_user(self, state, audio):
        with pytest.raises(Unauthorized):
            state.engagement.record_view(audio["id"], None)

    def test_missing_audio(self, state, fan):
        with pytest.raises(NotFound):
            state.engagement.record_view(new_id(), fan["id"])


class TestAddComment:
    def test_creates_comment_with_author(self, state, audio, fan):
        comment = state.engagement.add_comment(audio["id"], fan["id"], "  Lovely recording  ")
        assert comment["content"] == "Lovely recording"
        assert comment["author"]["id"] == fan["id"]
        assert comment["audio"] == audio["id"]
        assert state.audio_store.get_by_id(audio["id"])["comment_ids"] == [comment["id"]]
        assert state.comment_store.get_by_id(comment["id"])["content"] == "Lovely recording"

    @pytest.mark.parametrize("content", ["   ", "", None, "\n\t"])
    def test_blank_content_rejected_without_record(self, state, audio, fan, content):
        with pytest.raises(ValidationError):
            state.engagement.add_comment(audio["id"], fan["id"], content)
        assert state.audio_store.get_by_id(audio["id"])["comment_ids"] == []
        assert len(state.comment_store._table) == 0

    def test_requires_user(self, state, audio):
        with pytest.raises(Unauthorized):
            state.engagement.add_comment(audio["id"], None, "hello")

    def test_missing_audio(self, state, fan):
        with pytest.raises(NotFound):
            state.engagement.add_comment(new_id(), fan["id"], "hello")
        assert len(state.comment_store._table) == 0

    def test_malformed_audio_id(self, state, fan):
        with pytest.raises(ValidationError):
            state.engagement.add_comment("bad-id", fan["id"], "hello")


class TestAudioDeletedMidRequest:
    """The author deletes their account while a fan's request is in flight."""

    @pytest.fixture
    def delete_after_first_read(self, state, author, monkeypatch):
        store = state.audio_store
        read = store.get_by_id
        deleted = []

        def get_then_delete(audio_id):
            found = read(audio_id)
            if not deleted:
                deleted.append(audio_id)
                state.accounts.delete_account(author["id"], author["id"])
            return found

        monkeypatch.setattr(store, "get_by_id", get_then_delete)
        return deleted

    def test_like_leaves_no_reference(self, state, audio, fan, delete_after_first_read):
        with pytest.raises(NotFound):
            state.engagement.toggle_like(audio["id"], fan["id"])
        assert delete_after_first_read == [audio["id"]]
        assert state.user_store.get_by_id(fan["id"])["liked_audios"] == []

    def test_bookmark_leaves_no_reference(self, state, audio, fan, delete_after_first_read):
        with pytest.raises(NotFound):
            state.engagement.toggle_bookmark(audio["id"], fan["id"])
        assert state.user_store.get_by_id(fan["id"])["saved_audios"] == []

    def test_like_undone_when_audio_goes_after_the_like(self, state, audio, author, fan, monkeypatch):
        add_ref = state.user_store.add_liked_audio

        def delete_then_add(user_id, audio_id, liked_at):
            state.accounts.delete_account(author["id"], author["id"])
            return add_ref(user_id, audio_id, liked_at)

        monkeypatch.setattr(state.user_store, "add_liked_audio", delete_then_add)
        with pytest.raises(NotFound):
            state.engagement.toggle_like(audio["id"], fan["id"])
        assert state.user_store.get_by_id(fan["id"])["liked_audios"] == []
