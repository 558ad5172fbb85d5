import io
import json

import pytest
from botocore.exceptions import ClientError

from clients.bedrock_client import BedrockClient, BedrockError
from configs.config import Config
from utils.change_classifier import ChangeClassifier
from utils.change_models import ClassificationBatch, TitleClassification
from utils.json_sanitizer import JSONSanitizerError, extract_and_validate
from utils.structured_output import StructuredOutputClient, StructuredOutputError

VALID = '```json\n{"items": [{"title": "Tidy up", "category": "other"}, {"title": "Speed up search", "category": "performance"},]}\n```'


class FakeBedrock:
    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def invoke_model(self, prompt, max_tokens=None):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeRuntime:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.requests = []

    def invoke_model(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return {"body": io.BytesIO(json.dumps(self.payload).encode("utf-8"))}


def test_extract_and_validate_handles_fences_and_trailing_commas():
    batch = extract_and_validate("Sure! " + VALID, ClassificationBatch)
    assert [i.category for i in batch.items] == ["other", "performance"]


def test_extract_and_validate_error_codes():
    with pytest.raises(JSONSanitizerError) as exc:
        extract_and_validate("", ClassificationBatch)
    assert exc.value.code == "NO_JSON"
    with pytest.raises(JSONSanitizerError) as exc:
        extract_and_validate('{"items": [{"title": "x", "category": "misc"}]}', ClassificationBatch)
    assert exc.value.code == "VALIDATION"
    with pytest.raises(JSONSanitizerError) as exc:
        extract_and_validate("no json here", ClassificationBatch)
    assert exc.value.code == "JSON_DECODE"


def test_create_injects_schema():
    bedrock = FakeBedrock(VALID)
    batch = StructuredOutputClient(bedrock).create(ClassificationBatch, "Classify these")
    assert len(batch.items) == 2
    assert bedrock.prompts[0].startswith("Classify these")
    assert '"items"' in bedrock.prompts[0]


def test_create_repairs_once(monkeypatch):
    monkeypatch.setattr(Config, "ALLOW_JSON_REPAIR", True)
    bedrock = FakeBedrock("I cannot comply", VALID)
    batch = StructuredOutputClient(bedrock).create(ClassificationBatch, "Classify")
    assert len(batch.items) == 2
    assert len(bedrock.prompts) == 2
    assert "PREVIOUS_ATTEMPT" in bedrock.prompts[1]


def test_create_fails_after_repair(monkeypatch):
    monkeypatch.setattr(Config, "ALLOW_JSON_REPAIR", True)
    bedrock = FakeBedrock("nope", "still nope")
    with pytest.raises(StructuredOutputError) as exc:
        StructuredOutputClient(bedrock).create(ClassificationBatch, "Classify")
    assert exc.value.code == "JSON_DECODE"


def test_create_without_repair(monkeypatch):
    monkeypatch.setattr(Config, "ALLOW_JSON_REPAIR", False)
    bedrock = FakeBedrock("nope")
    with pytest.raises(StructuredOutputError):
        StructuredOutputClient(bedrock).create(ClassificationBatch, "Classify")
    assert len(bedrock.prompts) == 1


def test_model_call_failure_keeps_code():
    bedrock = FakeBedrock(BedrockError("slow", code="TIMEOUT"))
    with pytest.raises(StructuredOutputError) as exc:
        StructuredOutputClient(bedrock).create(ClassificationBatch, "Classify")
    assert exc.value.code == "TIMEOUT"


def test_bedrock_client_reads_text_content():
    runtime = FakeRuntime({"content": [{"type": "text", "text": "hello"}]})
    client = BedrockClient(model_id="test-model", max_tokens=100, runtime=runtime)
    assert client.invoke_model("hi") == "hello"
    request = runtime.requests[0]
    assert request["modelId"] == "test-model"
    body = json.loads(request["body"])
    assert body["max_tokens"] == 100
    assert body["messages"][0]["content"][0]["text"] == "hi"


@pytest.mark.parametrize("runtime,code", [
    (FakeRuntime(error=ClientError({"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}}, "InvokeModel")), "RATE_LIMIT"),
    (FakeRuntime(error=ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "InvokeModel")), "UNAUTHORIZED"),
    (FakeRuntime({"content": []}), "UNKNOWN"),
    (FakeRuntime({"content": [{"type": "text", "text": "  "}]}), "UNKNOWN"),
])
def test_bedrock_client_errors(runtime, code):
    client = BedrockClient(model_id="m", max_tokens=10, runtime=runtime)
    with pytest.raises(BedrockError) as exc:
        client.invoke_model("hi")
    assert exc.value.code == code


class FakeStructured:
    def __init__(self, batch):
        self.batch = batch
        self.prompts = []

    def create(self, model_class, prompt, max_tokens=None):
        assert model_class is ClassificationBatch
        self.prompts.append(prompt)
        return self.batch


def test_classifier_maps_titles():
    structured = FakeStructured(ClassificationBatch(items=[
        TitleClassification(title="Speed up search", category="performance"),
        TitleClassification(title="Rename helper", category="other"),
    ]))
    result = ChangeClassifier(structured).classify(["Speed up search", "Rename helper\nwith body"])
    assert result == {"Speed up search": "performance", "Rename helper": "other"}
    prompt = structured.prompts[0]
    assert "Speed up search\nRename helper with body" in prompt
    assert "{titles}" not in prompt


def test_classifier_skips_empty_input():
    structured = FakeStructured(ClassificationBatch())
    assert ChangeClassifier(structured).classify([]) == {}
    assert structured.prompts == []
