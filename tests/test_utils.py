import json
import logging

from assistant_sidecar.agent.routing import is_document_question
from assistant_sidecar.protocol.events import StreamEventType
from assistant_sidecar.protocol.objects import ChatRequest, StreamEvent
from assistant_sidecar.utils.credential_store import (
    read_first_credential_email,
    read_scopes_for_email,
    resolve_identity,
)
from assistant_sidecar.utils.logger import setup_logging, stringify_preview
from assistant_sidecar.utils.sensitive_str import SensitiveStr


class TestCredentialStore:
    def test_missing_directory(self, tmp_path):
        identity = resolve_identity(tmp_path / "nope")
        assert identity.email == "unknown"
        assert identity.scopes == []

    def test_prefers_email_named_file(self, tmp_path):
        (tmp_path / "aaa.json").write_text("{}")
        (tmp_path / "ada@example.com.json").write_text(
            json.dumps({"scopes": ["calendar", "gmail.readonly", 3]})
        )
        (tmp_path / "notes.txt").write_text("ignored")

        assert read_first_credential_email(tmp_path) == "ada@example.com"
        identity = resolve_identity(tmp_path)
        assert identity.email == "ada@example.com"
        assert identity.scopes == ["calendar", "gmail.readonly"]

    def test_unreadable_scopes(self, tmp_path):
        (tmp_path / "ada@example.com.json").write_text("{broken")
        assert read_scopes_for_email(tmp_path, "ada@example.com") == []
        assert read_scopes_for_email(tmp_path, "other@example.com") == []


class TestRouting:
    def test_document_questions(self):
        assert is_document_question("What does the PDF say on page 3?")
        assert is_document_question("Summarize this document")

    def test_action_questions(self):
        assert not is_document_question("Schedule a meeting tomorrow at 10")
        assert not is_document_question("")


class TestProtocolObjects:
    def test_event_drops_unset_fields(self):
        payload = StreamEvent(type=StreamEventType.TOKEN, content="hi").to_dict()
        assert payload["type"] == "token"
        assert payload["content"] == "hi"
        assert "tool" not in payload
        assert "error" not in payload

    def test_oauth_event_uses_camel_case(self):
        payload = StreamEvent(
            type=StreamEventType.OAUTH_REQUIRED, provider="google_calendar", auth_url="u"
        ).to_dict()
        assert payload["authUrl"] == "u"
        assert "auth_url" not in payload

    def test_chat_request_aliases(self):
        request = ChatRequest.model_validate(
            {
                "message": "hi",
                "conversationId": "c1",
                "apiKey": "sk",
                "providerId": "ollama",
                "systemPrompt": "be nice",
                "fileContext": ["a"],
                "unexpected": True,
            }
        )
        assert request.conversation_id == "c1"
        assert request.credential == "sk"
        assert request.provider_id == "ollama"
        assert request.system_prompt == "be nice"
        assert request.file_summaries == ["a"]


class TestLoggingHelpers:
    def test_setup_logging_is_idempotent(self):
        root = logging.getLogger()
        setup_logging("DEBUG")
        count = len(root.handlers)
        setup_logging("INFO")
        assert len(root.handlers) == count
        assert root.level == logging.INFO

    def test_stringify_preview_truncates(self):
        assert stringify_preview({"a": 1}) == '{"a": 1}'
        assert stringify_preview("x" * 10, max_len=4) == "xxxx…"
        assert stringify_preview(None) == "null"

    def test_secret_masking(self):
        assert SensitiveStr("sk-abcdef").mask_for_display() == "sk-***"
        assert SensitiveStr(None).mask_for_display() == "none"
        assert "abcdef" not in repr(SensitiveStr("sk-abcdef"))

    def test_secret_never_unwraps_to_text(self):
        secret = SensitiveStr("sk-abcdef")
        assert str(secret) == "sk-***"
        assert f"key={secret}" == "key=sk-***"
        assert not hasattr(secret, "get_secret")
