import base64
import json
import logging
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from pdf_grid.config import Settings
from pdf_grid.errors import ExtractionServiceError, ParseError
from pdf_grid.pipeline.extractor import EXTRACT_PROMPT, SYSTEM_PROMPT, BatchExtractionClient


def _fake_client(text=None, *, error=None, stop_reason="end_turn", captured=None):
    def create(**kwargs):
        if captured is not None:
            captured.update(kwargs)
        if error is not None:
            raise error
        blocks = [] if text is None else [SimpleNamespace(type="text", text=text)]
        return SimpleNamespace(content=blocks, stop_reason=stop_reason)

    return SimpleNamespace(messages=SimpleNamespace(create=create))


def test_request_carries_pdf_prompt_and_system_rules() -> None:
    captured: dict = {}
    client = BatchExtractionClient(
        _fake_client('{"1": [["a"]]}', captured=captured),
        model="claude-test",
        max_tokens=1234,
    )

    client.extract(b"%PDF-fake")

    assert captured["model"] == "claude-test"
    assert captured["max_tokens"] == 1234
    assert captured["system"] == SYSTEM_PROMPT
    document, prompt = captured["messages"][0]["content"]
    assert document["type"] == "document"
    assert document["source"]["media_type"] == "application/pdf"
    assert base64.b64decode(document["source"]["data"]) == b"%PDF-fake"
    assert prompt == {"type": "text", "text": EXTRACT_PROMPT}


def test_system_prompt_states_grid_rules() -> None:
    assert "ONE VISUAL CELL = ONE STRING" in SYSTEM_PROMPT
    assert '" / "' in SYSTEM_PROMPT
    assert '""' in SYSTEM_PROMPT
    assert "JSON" in SYSTEM_PROMPT


def test_reply_is_parsed_into_batch_local_map() -> None:
    payload = {"1": [["Item", "Jan"], ["Revenue", ""]], "2": [["Notes"]]}
    client = BatchExtractionClient(_fake_client("```json\n" + json.dumps(payload) + "\n```"))

    assert client.extract(b"pdf") == payload


def test_text_blocks_are_concatenated() -> None:
    response = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text='{"1": [["a", '),
            SimpleNamespace(type="text", text='"b"]]}'),
        ],
        stop_reason="end_turn",
    )
    fake = SimpleNamespace(messages=SimpleNamespace(create=lambda **_: response))

    assert BatchExtractionClient(fake).extract(b"pdf") == {"1": [["a", "b"]]}


def test_api_error_becomes_extraction_service_error() -> None:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client = BatchExtractionClient(_fake_client(error=anthropic.APIConnectionError(request=request)))

    with pytest.raises(ExtractionServiceError) as excinfo:
        client.extract(b"pdf")

    assert isinstance(excinfo.value.__cause__, anthropic.APIError)


@pytest.mark.parametrize("text", [None, "", "   \n"])
def test_empty_reply_is_a_service_error(text) -> None:
    client = BatchExtractionClient(_fake_client(text))

    with pytest.raises(ExtractionServiceError):
        client.extract(b"pdf")


def test_truncated_reply_is_repaired_and_logged(caplog) -> None:
    client = BatchExtractionClient(
        _fake_client('{"1": [["A","B"],["C",', stop_reason="max_tokens"),
        max_tokens=10,
    )

    with caplog.at_level(logging.WARNING):
        result = client.extract(b"pdf")

    assert result == {"1": [["A", "B"]]}
    assert "max_tokens" in caplog.text


def test_undecodable_reply_raises_parse_error() -> None:
    client = BatchExtractionClient(_fake_client("I could not find any tables."))

    with pytest.raises(ParseError):
        client.extract(b"pdf")


def test_from_credential_uses_settings() -> None:
    settings = Settings(model="claude-other", max_tokens=999)

    client = BatchExtractionClient.from_credential("sk-test", settings)

    assert isinstance(client.client, anthropic.Anthropic)
    assert client.model == "claude-other"
    assert client.max_tokens == 999
