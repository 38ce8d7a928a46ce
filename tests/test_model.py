import pytest
from starlette.testclient import TestClient

from ahmad.model import (
    GEN_TOKENS,
    OUTPUT_NAME,
    AppState,
    create_app,
    generate_tokens,
    next_token,
)

VOCAB = 128


class FakeTokenizer:
    def __init__(self, fail=False):
        self.fail = fail

    def encode(self, text):
        if self.fail:
            raise RuntimeError("cannot encode")
        return [ord(c) for c in text]

    def decode(self, ids):
        return "".join(chr(i) for i in ids)


class FakeSession:
    """Emits the scripted tokens one after another as the argmax."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []

    def run(self, inputs):
        self.calls.append(inputs)
        ids = inputs[0][0]
        seq = len(ids)
        data = [0.0] * (seq * VOCAB)
        wanted = self.script[len(self.calls) - 1]
        data[(seq - 1) * VOCAB + wanted] = 1.0
        return {OUTPUT_NAME: ([1, 1, seq, VOCAB], data)}


def test_next_token_uses_last_row_only():
    logits = [9.0, 0.0, 0.0, 0.0, 0.5, 0.2]
    assert next_token(logits, 2, 3) == 1


def test_next_token_result_is_maximum_of_last_row():
    logits = [0.1, 0.7, 0.3, 0.9, 0.2, 0.4, 0.8, 0.05]
    result = next_token(logits, 2, 4)
    last = logits[4:]
    assert last[result] == max(last)


def test_next_token_first_of_ties():
    assert next_token([0.3, 0.3, 0.1], 1, 3) == 0


def test_next_token_empty_last_row():
    with pytest.raises(ValueError):
        next_token([1.0, 2.0], 3, 2)


def test_next_token_rejects_bad_dims():
    with pytest.raises(ValueError):
        next_token([1.0], 0, 1)


def test_generate_tokens_decodes_each_step():
    session = FakeSession([ord("h"), ord("i")])
    out = list(generate_tokens(session, FakeTokenizer(), [1, 2], 2))
    assert out == ["h", "i"]


def test_generate_tokens_feeds_growing_sequence():
    session = FakeSession([ord("h"), ord("i")])
    list(generate_tokens(session, FakeTokenizer(), [1, 2], 2))
    assert session.calls[0] == [[[1, 2]]]
    assert session.calls[1] == [[[1, 2, ord("h")]]]


def test_generate_tokens_does_not_mutate_input():
    tokens = [5, 6]
    list(generate_tokens(FakeSession([ord("x")]), FakeTokenizer(), tokens, 1))
    assert tokens == [5, 6]


def test_generate_tokens_default_count():
    session = FakeSession([ord("a")] * 5)
    out = list(generate_tokens(session, FakeTokenizer(), [1]))
    assert len(out) == GEN_TOKENS


def _client(session, tokenizer=None):
    state = AppState(session=session, tokenizer=tokenizer or FakeTokenizer())
    return TestClient(create_app(state))


def test_endpoint_streams_sse():
    client = _client(FakeSession([ord("h")]))
    response = client.post("/generate", json={"prompt": "ab"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.text == "data: h\n\n"


def test_endpoint_passes_encoded_prompt():
    session = FakeSession([ord("h")])
    _client(session).post("/generate", json={"prompt": "ab"})
    assert session.calls[0] == [[[ord("a"), ord("b")]]]


def test_endpoint_multiline_token():
    class NewlineTokenizer(FakeTokenizer):
        def decode(self, ids):
            return "a\nb"

    client = _client(FakeSession([1]), NewlineTokenizer())
    response = client.post("/generate", json={"prompt": "x"})
    assert response.text == "data: a\ndata: b\n\n"


def test_endpoint_missing_prompt():
    response = _client(FakeSession([1])).post("/generate", json={"other": "x"})
    assert response.status_code == 422


def test_endpoint_invalid_json():
    response = _client(FakeSession([1])).post(
        "/generate", content=b"{not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400


def test_endpoint_tokenizer_error():
    response = _client(FakeSession([1]), FakeTokenizer(fail=True)).post(
        "/generate", json={"prompt": "x"}
    )
    assert response.status_code == 500


def test_endpoint_rejects_get():
    response = _client(FakeSession([1])).get("/generate")
    assert response.status_code == 405