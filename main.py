"""Emo Assistant — launcher.

    python main.py serve              API server (uvicorn)
    python main.py parse reply.txt    show how a reply's directives are parsed
    python main.py chat [--echo]      console session against the state machine
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13015")


class ConsoleAvatar:
    """Avatar that logs every capability call instead of rendering it."""

    def feel(self, expression):
        print(f"  ~ feel({expression})")

    def morph_to(self, shape):
        print(f"  ~ morph_to({shape})")

    def set_preset(self, preset):
        print(f"  ~ set_preset({preset})")

    def set_undertone(self, undertone):
        print(f"  ~ set_undertone({undertone})")

    def play_chain(self, chain):
        print(f"  ~ play_chain({chain})")

    def set_camera(self, preset):
        print(f"  ~ set_camera({preset})")

    def set_moon_phase(self, phase):
        print(f"  ~ set_moon_phase({phase})")

    def set_sun_eclipse(self, kind):
        print(f"  ~ set_sun_eclipse({kind})")

    def set_moon_eclipse(self, kind):
        print(f"  ~ set_moon_eclipse({kind})")

    def toggle(self, feature, enabled):
        print(f"  ~ toggle({feature}, {'on' if enabled else 'off'})")


def cmd_serve(args):
    import uvicorn

    uvicorn.run("emo_assistant.app:app", host=args.host, port=int(args.port), reload=args.reload)


def cmd_parse(args):
    from emo_assistant.directives import DirectiveExtractor, parse_trailer

    text = sys.stdin.read() if args.file == "-" else Path(args.file).read_text()
    trailer = parse_trailer(text)
    extractor = DirectiveExtractor()
    clean_text = extractor.parse(trailer.body)
    print(json.dumps({
        "trailer": trailer.model_dump(),
        "clean_text": clean_text,
        "directives": [d.model_dump() for d in extractor.directives],
    }, indent=2))


async def _chat_session(args):
    from emo_assistant import config
    from emo_assistant.conversation import ConversationStateMachine
    from emo_assistant.directives import AvatarCapabilities
    from emo_assistant.llm import EchoLLM, HttpLLM
    from emo_assistant.narration import PacedNarrator
    from emo_assistant.prompts import system_prompt

    settings = config.get_config(args.config)
    if args.echo:
        llm = EchoLLM()
    else:
        llm_settings = settings["llm"]
        llm = HttpLLM(
            provider_url=llm_settings["url"],
            api_key=llm_settings["api_key"],
            provider_format=llm_settings["format"],
            model=llm_settings["model"],
            system_prompt=system_prompt(stories=args.stories),
            max_tokens=int(llm_settings["max_tokens"]),
            timeout=float(llm_settings["timeout"]),
        )

    narrator = PacedNarrator(
        chars_per_second=float(settings["narration"]["chars_per_second"]),
        on_text=lambda text: print(f"Emo: {text}"),
    )
    avatar = AvatarCapabilities.from_avatar(ConsoleAvatar())
    machine = ConversationStateMachine(
        avatar,
        llm,
        narrator,
        timings=config.timings_from_config(settings),
        meditation_pattern=settings["meditation"]["pattern"],
        meditation_cycles=int(settings["meditation"]["max_cycles"]),
        default_screen_text=settings["screen"]["default_text"],
    )

    print("Type a message (Ctrl-D to quit). Ctrl-C quits immediately.")
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            machine.start_listening()
            machine.stop_listening()
            await machine.handle_transcript(line)
    finally:
        machine.shutdown()


def cmd_chat(args):
    try:
        asyncio.run(_chat_session(args))
    except KeyboardInterrupt:
        print()


def main():
    parser = argparse.ArgumentParser(description="Emo Assistant launcher")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=HOST)
    serve.add_argument("--port", default=PORT)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(func=cmd_serve)

    parse = sub.add_parser("parse", help="Parse a reply and print its directives")
    parse.add_argument("file", help="Reply text file, or - for stdin")
    parse.set_defaults(func=cmd_parse)

    chat = sub.add_parser("chat", help="Console conversation")
    chat.add_argument("--echo", action="store_true",
                      help="Echo input back as the reply (type directives yourself)")
    chat.add_argument("--stories", action="store_true",
                      help="Allow inline story directives in the system prompt")
    chat.add_argument("--config", type=Path, default=None,
                      help="Config file (default: ./config.json)")
    chat.set_defaults(func=cmd_chat)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
