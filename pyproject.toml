[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ahmad"
version = "0.1.0"
description = "Prompt-driven music generation: a token-streaming inference server and a client-side editor model that requests generated MIDI or audio files."
requires-python = ">=3.10"
keywords = ["music", "midi", "generation", "server-sent events", "inference", "plugin"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "starlette",
    "uvicorn",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "httpx",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["ahmad"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
