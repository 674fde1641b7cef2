"""CLI: вызовы AI против провайдера, настроенного в окружении."""

import argparse
import asyncio
import json
import sys

from lexi_gateway.infrastructure.logging import configure_logging
from lexi_gateway.providers.config import SettingsAccessor
from lexi_gateway.services.client import AIClient
from lexi_gateway.services.errors import AIClientError
from lexi_gateway.settings import get_settings


def _client() -> AIClient:
    settings = get_settings()
    return AIClient(SettingsAccessor(settings), http_timeout=settings.http_timeout_seconds)


def _print_delta(delta: str, accumulated: str) -> None:
    sys.stdout.write(delta)
    sys.stdout.flush()


def cmd_analyze_word(args: argparse.Namespace) -> int:
    result = asyncio.run(_client().analyze_word(args.word))
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def cmd_analyze_sentence(args: argparse.Namespace) -> int:
    result = asyncio.run(
        _client().analyze_sentence(args.sentence, stream_preferred=not args.no_stream)
    )
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def cmd_chat(args: argparse.Namespace) -> int:
    client = _client()
    if args.stream:
        asyncio.run(client.chat(args.message, stream=True, on_chunk=_print_delta))
        print()
    else:
        print(asyncio.run(client.chat(args.message)))
    return 0


def cmd_models(args: argparse.Namespace) -> int:
    for name in asyncio.run(_client().list_models()):
        print(name)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Точка входа CLI."""
    parser = argparse.ArgumentParser(prog="lexi-gateway", description="Lexi Gateway: CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_word = sub.add_parser("analyze-word", help="Analyze one English word")
    p_word.add_argument("word")
    p_word.set_defaults(func=cmd_analyze_word)

    p_sentence = sub.add_parser("analyze-sentence", help="Grade one English sentence")
    p_sentence.add_argument("sentence")
    p_sentence.add_argument(
        "--no-stream",
        action="store_true",
        help="Skip the streaming attempt and send one plain request",
    )
    p_sentence.set_defaults(func=cmd_analyze_sentence)

    p_chat = sub.add_parser("chat", help="Ask the tutoring assistant")
    p_chat.add_argument("message")
    p_chat.add_argument("--stream", action="store_true", help="Print the answer as it arrives")
    p_chat.set_defaults(func=cmd_chat)

    p_models = sub.add_parser("models", help="List models available to the configured provider")
    p_models.set_defaults(func=cmd_models)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        return int(args.func(args))
    except AIClientError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
