from unittest.mock import MagicMock, patch

import pytest

from runclub.errors import IntegrationError, ValidationError
from runclub.feedback import Feedback, list_feedback, retry_feedback_issue, submit_feedback
from runclub.linear import create_linear_issue, linear_graphql


def _response(payload, ok=True, status_code=200):
    resp = MagicMock()
    resp.ok = ok
    resp.status_code = status_code
    resp.reason = "OK" if ok else "Bad Request"
    resp.text = ""
    resp.json.return_value = payload
    return resp


class TestSubmitFeedback:
    def test_created(self, make_user):
        user = make_user()
        issue = {"id": "iss_1", "url": "https://linear.app/club/issue/COA-1"}
        with patch("runclub.feedback.create_linear_issue", return_value=issue) as mock_create:
            result = submit_feedback(user.id, "bug", "  The stamp grid is blank  ", page_path="/")

        assert result["linear_status"] == "created"
        assert result["linear_issue_url"] == issue["url"]
        kwargs = mock_create.call_args.kwargs
        assert kwargs["title"] == "[Feedback] bug: The stamp grid is blank"
        assert kwargs["team_key"] == "COA"
        assert kwargs["priority"] == 3
        assert kwargs["state_name"] == "Triage"
        assert kwargs["label_name"] == "feedback"
        assert "Page: /" in kwargs["description"]
        stored = Feedback.get_by_id(result["feedback_id"])
        assert stored.message == "The stamp grid is blank"
        assert stored.linear_issue_id == "iss_1"

    def test_long_message_title_is_truncated(self, make_user):
        user = make_user()
        message = "x" * 100
        with patch("runclub.feedback.create_linear_issue", return_value={"id": "i", "url": "u"}) as mock_create:
            submit_feedback(user.id, "idea", message)
        assert mock_create.call_args.kwargs["title"] == f"[Feedback] idea: {'x' * 80}…"

    def test_tracker_failure_is_recorded(self, make_user):
        user = make_user()
        with patch("runclub.feedback.create_linear_issue", side_effect=IntegrationError("boom")):
            result = submit_feedback(user.id, "question", "How do I log a run?")

        assert result["linear_status"] == "failed"
        assert result["linear_issue_url"] is None
        assert Feedback.get_by_id(result["feedback_id"]).linear_error == "boom"

    def test_missing_api_key_fails_softly(self, make_user):
        user = make_user()
        result = submit_feedback(user.id, "bug", "no key configured")
        stored = Feedback.get_by_id(result["feedback_id"])
        assert stored.linear_status == "failed"
        assert stored.linear_error == "Missing required env var: LINEAR_API_KEY"

    def test_team_key_from_env(self, make_user, monkeypatch):
        monkeypatch.setenv("LINEAR_TEAM_KEY", "RUN")
        user = make_user()
        with patch("runclub.feedback.create_linear_issue", return_value={"id": "i", "url": "u"}) as mock_create:
            submit_feedback(user.id, "bug", "hello")
        assert mock_create.call_args.kwargs["team_key"] == "RUN"

    @pytest.mark.parametrize(
        ("category", "message"),
        [("bug", "   "), ("bug", "x" * 5001), ("praise", "nice")],
    )
    def test_validation(self, make_user, category, message):
        user = make_user()
        with pytest.raises(ValidationError):
            submit_feedback(user.id, category, message)
        assert Feedback.select().count() == 0


class TestRetry:
    def test_retry_failed(self, make_user):
        user = make_user()
        with patch("runclub.feedback.create_linear_issue", side_effect=IntegrationError("down")):
            result = submit_feedback(user.id, "bug", "flaky")

        with patch("runclub.feedback.create_linear_issue", return_value={"id": "i2", "url": "u2"}):
            retried = retry_feedback_issue(result["feedback_id"])

        assert retried["linear_status"] == "created"
        assert Feedback.get_by_id(result["feedback_id"]).linear_error is None

    def test_retry_is_idempotent(self, make_user):
        user = make_user()
        with patch("runclub.feedback.create_linear_issue", return_value={"id": "i", "url": "u"}):
            result = submit_feedback(user.id, "bug", "once")
        with patch("runclub.feedback.create_linear_issue") as mock_create:
            retried = retry_feedback_issue(result["feedback_id"])
        mock_create.assert_not_called()
        assert retried["linear_issue_url"] == "u"

    def test_list_feedback(self, make_user):
        user = make_user(name="Ada")
        with patch("runclub.feedback.create_linear_issue", return_value={"id": "i", "url": "u"}):
            submit_feedback(user.id, "idea", "more badges")
        [item] = list_feedback()
        assert item["user_name"] == "Ada"
        assert item["category"] == "idea"


class TestLinearClient:
    def test_missing_key(self):
        with pytest.raises(IntegrationError, match="LINEAR_API_KEY"):
            linear_graphql("{ viewer { id } }")

    def test_graphql_errors_raise(self, monkeypatch):
        monkeypatch.setenv("LINEAR_API_KEY", "lin_test")
        with patch("runclub.linear.requests.post", return_value=_response({"errors": [{"message": "nope"}]})):
            with pytest.raises(IntegrationError, match="nope"):
                linear_graphql("{ viewer { id } }")

    def test_http_error_raises(self, monkeypatch):
        monkeypatch.setenv("LINEAR_API_KEY", "lin_test")
        with patch("runclub.linear.requests.post", return_value=_response({}, ok=False, status_code=400)):
            with pytest.raises(IntegrationError, match="400"):
                linear_graphql("{ viewer { id } }")

    def test_create_issue(self, monkeypatch):
        monkeypatch.setenv("LINEAR_API_KEY", "lin_test")
        responses = [
            _response({"data": {"teams": {"nodes": [{"id": "team_1", "key": "COA"}]}}}),
            _response({"data": {"issueLabels": {"nodes": []}}}),
            _response({"data": {"team": {"states": {"nodes": [{"id": "st_1", "name": "Triage"}]}}}}),
            _response(
                {"data": {"issueCreate": {"success": True, "issue": {"id": "iss", "url": "https://l/iss"}}}}
            ),
        ]
        with patch("runclub.linear.requests.post", side_effect=responses) as mock_post:
            issue = create_linear_issue("COA", "title", "body", label_name="feedback", state_name="triage")

        assert issue == {"id": "iss", "url": "https://l/iss"}
        sent = mock_post.call_args.kwargs["json"]["variables"]["input"]
        assert sent["teamId"] == "team_1"
        assert sent["stateId"] == "st_1"
        assert "labelIds" not in sent
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "lin_test"

    def test_unknown_team(self, monkeypatch):
        monkeypatch.setenv("LINEAR_API_KEY", "lin_test")
        with patch("runclub.linear.requests.post", return_value=_response({"data": {"teams": {"nodes": []}}})):
            with pytest.raises(IntegrationError, match="team not found"):
                create_linear_issue("NOPE", "t", "d")
