"""Token generation service that streams decoded tokens as server-sent events."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route

# Max number of generated tokens per request.
GEN_TOKENS = 1
# Sample from the k most likely next tokens at each step.
TOP_K = 20
# Name of the model output holding the logits.
OUTPUT_NAME = "output1"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

log = logging.getLogger(__name__)

Outputs = Mapping[str, tuple[Sequence[int], Sequence[float]]]


class Session(Protocol):
    """An inference session: takes token ids shaped [1, 1, n], returns named outputs."""

    def run(self, inputs: list[list[list[int]]]) -> Outputs: ...


class Tokenizer(Protocol):
    """Turns text into token ids and back."""

    def encode(self, text: str) -> Sequence[int]: ...

    def decode(self, ids: Sequence[int]) -> str: ...


@dataclass
class AppState:
    """Shared state of the service: the model session, its tokenizer and a lock."""

    session: Any
    tokenizer: Any
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class _LockedSession:
    """Serialises access to a shared session."""

    def __init__(self, state: AppState) -> None:
        self._state = state

    def run(self, inputs: list[list[list[int]]]) -> Outputs:
        with self._state.lock:
            return self._state.session.run(inputs)


def next_token(logits: Sequence[float], seq_len: int, vocab_size: int) -> int:
    """Return the index of the most likely token at the last sequence position."""
    if seq_len < 1 or vocab_size < 1:
        raise ValueError("seq_len and vocab_size must be positive")
    last = list(logits[(seq_len - 1) * vocab_size:])
    if not last:
        raise ValueError("no logits for the last position")
    return max(range(len(last)), key=last.__getitem__)


def generate_tokens(
    session: Session,
    tokenizer: Tokenizer,
    tokens: Iterable[int],
    gen_tokens: int = GEN_TOKENS,
) -> Iterator[str]:
    """Greedily extend ``tokens``, yielding each new token decoded to text."""
    tokens = list(tokens)
    for _ in range(gen_tokens):
        outputs = session.run([[list(tokens)]])
        dims, logits = outputs[OUTPUT_NAME]
        token = next_token(logits, int(dims[2]), int(dims[3]))
        tokens.append(token)
        yield tokenizer.decode([token])


def _sse_event(data: str) -> str:
    lines = data.split("\n")
    return "".join(f"data: {line}\n" for line in lines) + "\n"


async def _generate(request: Request) -> Response:
    state: AppState = request.app.state.ahmad
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return PlainTextResponse("invalid JSON body", status_code=400)

    prompt = body.get("prompt") if isinstance(body, dict) else None
    if not isinstance(prompt, str):
        return PlainTextResponse("missing or invalid field `prompt`", status_code=422)

    try:
        tokens = [int(token_id) for token_id in state.tokenizer.encode(prompt)]
    except Exception as exc:  # the tokenizer is supplied by the caller
        log.error("tokenizer error: %s", exc)
        return PlainTextResponse("tokenizer error", status_code=500)

    events = (
        _sse_event(piece)
        for piece in generate_tokens(_LockedSession(state), state.tokenizer, tokens, GEN_TOKENS)
    )
    return StreamingResponse(
        events,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


def create_app(state: AppState) -> Starlette:
    """Build the web application exposing ``POST /generate``."""
    app = Starlette(routes=[Route("/generate", _generate, methods=["POST"])])
    app.state.ahmad = state
    return app


def serve(
    session: Session,
    tokenizer: Tokenizer,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the generation endpoint until interrupted."""
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    app = create_app(AppState(session=session, tokenizer=tokenizer))
    log.info("Listening on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")