"""Resolve a single video from the command line.

    python -m ytaudio https://youtu.be/dQw4w9WgXcQ
    python -m ytaudio --token-help
"""
import argparse
from dataclasses import replace
import json
import logging
import sys

from .config import PROVIDER_KINDS, load_settings
from .convert import convert
from .errors import ConvertError
from .response import error_body, success_body

TOKEN_HELP = """\
--- YouTube PoToken ---
The yt-dlp provider can forward a PO token and visitor data to get past
"Sign in to confirm you're not a bot".

1. Open https://www.youtube.com in a browser and open the Network tab.
2. Reload and play any video.
3. Filter requests by "player" and find one with a "po=" parameter.
4. Copy the value of "po=" (the PO token) and of "visitorData=".

Then set them for the service:

    export YOUTUBE_PO_TOKEN=<po token>
    export YOUTUBE_VISITOR_DATA=<visitor data>

Cookies can be provided through YOUTUBE_COOKIES as a JSON export, the text
of a Netscape cookies.txt file, or a raw "name=value; name2=value2" string.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ytaudio", description="Resolve a YouTube video to a direct audio stream URL.")
    parser.add_argument("url", nargs="?", help="YouTube URL or 11 character video ID")
    parser.add_argument("--token-help", action="store_true", help="Explain how to obtain a PO token and visitor data.")
    parser.add_argument("--providers", help="Override PROVIDER_CHAIN, e.g. 'piped,ytdlp'.")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.token_help:
        print(TOKEN_HELP)
        return 0

    settings = load_settings()
    if args.providers:
        chain = [p.strip().lower() for p in args.providers.split(",") if p.strip()]
        unknown = [p for p in chain if p not in PROVIDER_KINDS]
        if unknown:
            parser.error(f"unknown provider(s): {', '.join(unknown)}")
        settings = replace(settings, provider_chain=chain)

    logging.basicConfig(level=settings.log_level, stream=sys.stderr)

    try:
        result = convert(args.url, settings)
    except ConvertError as e:
        print(json.dumps(error_body(e.message, e.details, debug=True), indent=2))
        return 1

    print(json.dumps(success_body(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
