#!/usr/bin/env python
"""
Print the model registry the relay would serve:
- runs the same startup discovery as the server (Ollama / OpenAI-like)
- `--static` skips discovery and prints only the built-in list
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from relay.provider.discovery import build_model_registry  # noqa: E402
from relay.provider.registry import ModelRegistry  # noqa: E402
from relay.settings import settings  # noqa: E402


async def load_registry(static_only: bool) -> ModelRegistry:
    if static_only:
        return ModelRegistry(settings=settings)
    async with httpx.AsyncClient(timeout=settings.discovery_timeout) as client:
        return await build_model_registry(client, settings)


def main() -> None:
    parser = argparse.ArgumentParser(description="List models known to the relay")
    parser.add_argument("--static", action="store_true", help="skip local model discovery")
    parser.add_argument("--json", action="store_true", help="print JSON instead of a table")
    args = parser.parse_args()

    registry = asyncio.run(load_registry(args.static))
    if args.json:
        print(json.dumps([m.model_dump() for m in registry.models], ensure_ascii=False, indent=2))
        return

    print(f"Default model: {registry.default_provider}/{registry.default_model}")
    for info in registry.models:
        print(f"{info.provider:<12} {info.name:<40} {info.label}")


if __name__ == "__main__":
    main()
