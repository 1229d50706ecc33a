#!/usr/bin/env python3
"""
Smoke-test the configured streaming backend with a minimal prompt.

Usage:
  python scripts/backend_smoke_test.py
  python scripts/backend_smoke_test.py --backend openai --model gpt-4o-mini
  python scripts/backend_smoke_test.py --prompt "Count to five."
"""

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path
from typing import Tuple

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import BACKEND_MODEL_DEFAULTS, Config, load_config
from core.errors import PipelineError
from core.personality import load_persona
from core.stream import StreamDecoder
from core.types import ConversationTurn
from providers import ChatBackend


def _build_backend_config(source_cfg: Config, backend: str, model: str) -> Config:
    """Clone config while forcing backend/model for one smoke test."""
    return dataclasses.replace(source_cfg, llm_backend=backend, llm_model=model)


async def _check_backend(cfg: Config, prompt: str, timeout_seconds: int) -> Tuple[str, str]:
    if not cfg.llm_api_url:
        return "SKIP", "missing LLM_API_URL"
    try:
        backend = ChatBackend(cfg)
    except ValueError as exc:
        return "SKIP", str(exc)

    turns = [
        ConversationTurn(role="system", text=load_persona(cfg)),
        ConversationTurn(role="user", text=prompt),
    ]
    decoder = StreamDecoder(backend.framing(), session_id="smoke")
    deltas = 0
    parts: list[str] = []

    async def _consume():
        nonlocal deltas
        async with backend.stream(turns) as chunks:
            async for event in decoder.events(chunks):
                deltas += 1
                parts.append(event.text)
                print(event.text, end="", flush=True)

    try:
        await asyncio.wait_for(_consume(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        return "FAIL", f"timed out after {timeout_seconds}s"
    except PipelineError as exc:
        return "FAIL", f"[{exc.code}] {exc.message}"
    finally:
        print()

    text = "".join(parts).strip().replace("\n", " ")
    if not text:
        return "FAIL", f"empty response ({deltas} events)"
    return "OK", f"{deltas} events, {len(text)} chars: {text[:120]}"


async def _run(args: argparse.Namespace) -> int:
    root_cfg = load_config()
    backend = (args.backend or root_cfg.llm_backend).strip().lower()
    if backend not in BACKEND_MODEL_DEFAULTS:
        print(f"Invalid backend: {backend}")
        print(f"Valid backends: {', '.join(BACKEND_MODEL_DEFAULTS)}")
        return 2

    model = args.model or (root_cfg.llm_model if backend == root_cfg.llm_backend else BACKEND_MODEL_DEFAULTS[backend])
    cfg = _build_backend_config(root_cfg, backend, model)
    status, detail = await _check_backend(cfg, args.prompt, args.timeout)
    print(f"[{status}] {backend} ({model}) -> {detail}")
    return 1 if status == "FAIL" else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Smoke-test the configured streaming backend.")
    parser.add_argument(
        "--backend",
        default="",
        help="Backend to test (ollama or openai). Defaults to LLM_BACKEND.",
    )
    parser.add_argument(
        "--model",
        default="",
        help="Optional explicit model ID.",
    )
    parser.add_argument(
        "--prompt",
        default="Reply with exactly: OK",
        help="Test prompt sent to the backend.",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=45,
        help="Overall timeout in seconds.",
    )
    args = parser.parse_args()
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
