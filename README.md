# ahmad

`ahmad` generates music from a text prompt. It is made of a generation
server and a client, which talk over HTTP.

## Generation server: `ahmad.model`

The server offers a single endpoint, `POST /generate`. The request body is
JSON of the form `{"prompt": "..."}`. The server encodes the prompt with
the tokenizer and feeds the ids to the model session. The reply is a
`text/event-stream`, one event per generated token, and each event's data
is the decoded token text. Each request generates `GEN_TOKENS` tokens
(currently 1).

Error replies:

* `400` if the body is not valid JSON.
* `422` if `prompt` is missing or is not a string.
* `500` if the tokenizer fails.

Sampling is greedy. `next_token(logits, seq_len, vocab_size)` returns the
index of the highest logit at the last sequence position. It raises
`ValueError` for non-positive sizes or empty logits.
`generate_tokens(session, tokenizer, tokens, gen_tokens)` extends the token
list step by step and yields each new token as decoded text. It reads the
logits from the session output named `"output1"`, given as a pair of
dimensions `[1, 1, seq_len, vocab]` and flat values.

The session and the tokenizer are plain objects that you supply:

* A session has `run(inputs)`. It takes token ids nested as `[[ids]]` and
  returns a mapping of output names to `(dims, values)`.
* A tokenizer has `encode(text)` and `decode(ids)`.

`AppState` holds both, together with a lock that serialises calls to the
session. Start a server with:

```python
from ahmad.model import serve

serve(session, tokenizer, "127.0.0.1", 8000)
```

To mount the app in an ASGI server of your own, use
`create_app(AppState(session=..., tokenizer=...))`. It returns a Starlette
app.

## Client: `ahmad.agent`

The client reads the backend's base address from the `API_URL` environment
variable. If that variable is unset, the functions below raise
`RuntimeError`.

* `api_url(endpoint)` appends `endpoint` to the base. It raises
  `ValueError` if the result is not a usable URL.
* `check_backend()` opens a TCP connection to the backend host on 8000. It
  raises `OSError` if the connection fails.
* `request_response_stream(prompt, output_path)` posts a
  `GenerationPayload` to `api_url("generate")` and writes the response body
  to `output_path`. It yields `"33.0"`, `"66.0"` and `"99.0"` as it goes,
  then the number of bytes written.

`GenerationPayload.to_dict()` gives the JSON body: `prompt`,
`negative_prompt` and `client_output_path`.

## Editor model: `ahmad.editor`

`AhmadEditor` holds the editor's state:

* `user` is a `UserTextEditor`, holding the prompt text.
* `out_path` is an `AgentOutputContainer`, holding the output folder and
  file name.
* `progress` is an `AgentProgressBar`, holding a value from 0 to 100.
* `errors` holds the status text.

Pass `Message(kind, payload)` values to `AhmadEditor.update`. The message
kinds are listed in `MessageKind`. `update` returns a task: an iterator of
further messages, which is often empty. Feed those messages back into
`update` as well. Tasks come from three helpers:

* `reset_task()`
* `check_connection_task()`
* `request_task(prompt, filepath)`

If a file already exists at the output path when a prompt is submitted, the
editor refuses the request and sets an error message. It never overwrites
an existing file.

By default, choosing a folder opens a tkinter directory dialog. You can
replace the dialog by passing a callable as
`AgentOutputContainer(folder_picker=...)`.

`UIEvent` lists the event kinds of an alternative view model. Nothing in
the package acts on them.

## What the package does not do

* **It loads no model or tokenizer.** You must supply both to the server.
* **It draws no user interface.** The editor is state and message handling
  only, apart from the optional folder dialog.
* **It installs no command-line program.**

## Tests

The tests use pytest. Install their dependencies with the `test` extra.