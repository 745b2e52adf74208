"""Tests for resource name resolution and structured errors."""

import pytest

from mockpubsub.errors import AlreadyExists, InvalidArgument, NotFound, StatusCode
from mockpubsub.names import SUBSCRIPTIONS, TOPICS, resolve_name, subscription_name, topic_name


class TestResolveName:

    def test_short_name_is_scoped_to_project(self):
        name = topic_name("topic1", "p1")
        assert name.project_id == "p1"
        assert name.short_name == "topic1"
        assert name.full_name == "projects/p1/topics/topic1"

    def test_full_name_round_trips(self):
        name = subscription_name("projects/p1/subscriptions/sub1", "p1")
        assert name.short_name == "sub1"
        assert name.full_name == "projects/p1/subscriptions/sub1"

    def test_kind_mismatch_is_invalid_argument(self):
        malformed = "projects/p1/malformed-name/sub1"
        with pytest.raises(InvalidArgument) as exc_info:
            resolve_name(malformed, SUBSCRIPTIONS, "p1")
        assert exc_info.value.code == 3
        assert str(exc_info.value) == (
            f"3 INVALID_ARGUMENT: Invalid [subscriptions] name: (name={malformed})"
        )

    def test_topic_name_used_as_subscription_is_invalid(self):
        with pytest.raises(InvalidArgument) as exc_info:
            subscription_name("projects/p1/topics/t1", "p1")
        assert "Invalid [subscriptions] name" in exc_info.value.message

    def test_subscription_name_used_as_topic_is_invalid(self):
        with pytest.raises(InvalidArgument) as exc_info:
            resolve_name("projects/p1/subscriptions/s1", TOPICS, "p1")
        assert "Invalid [topics] name: (name=projects/p1/subscriptions/s1)" in str(exc_info.value)

    @pytest.mark.parametrize(
        "bad",
        [
            "",
            "a/b",
            "projects/p1/topics",
            "projects//topics/t1",
            "projects/p1/topics/t1/extra",
            "goog-reserved",
            "has space",
            "x" * 256,
        ],
    )
    def test_malformed_names(self, bad):
        with pytest.raises(InvalidArgument):
            topic_name(bad, "p1")

    def test_other_project_is_rejected(self):
        with pytest.raises(InvalidArgument) as exc_info:
            topic_name("projects/other/topics/t1", "p1")
        assert "projects/other/topics/t1" in str(exc_info.value)

    def test_allowed_punctuation(self):
        assert topic_name("a-b_c.d~e+f%20", "p1").short_name == "a-b_c.d~e+f%20"


class TestErrors:

    def test_codes_and_messages(self):
        assert AlreadyExists("Topic already exists").message == "6 ALREADY_EXISTS: Topic already exists"
        assert NotFound("Topic not found").code == StatusCode.NOT_FOUND == 5
        assert InvalidArgument("x").code == 3

    def test_to_dict(self):
        assert NotFound("Subscription does not exist").to_dict() == {
            "code": 5,
            "status": "NOT_FOUND",
            "message": "5 NOT_FOUND: Subscription does not exist",
        }
