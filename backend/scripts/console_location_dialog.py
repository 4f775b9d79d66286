"""Run a LocationDialog in the terminal.

Usage:
    python scripts/console_location_dialog.py --channel facebook --native --reverse-geocode

Type an address, or `@lat,lon` to simulate a location shared through the
channel's native picker. The resulting place is printed as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from dialogs import DialogStack, LocationDialog, Message  # noqa: E402
from domain.models import LocationOptions, LocationRequiredFields, Point  # noqa: E402

LOG = logging.getLogger("console_location_dialog")


def _parse_message(line: str) -> Message:
    if line.startswith("@"):
        try:
            lat, lon = (float(p) for p in line[1:].split(","))
            return Message(location=Point.from_lat_lon(lat, lon))
        except ValueError:
            LOG.warning("Could not parse coordinates from %r", line)
    return Message(text=line)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--channel", default="emulator", help="Channel id (e.g. facebook, skype)")
    parser.add_argument("--prompt", default="Where should I ship your order?")
    parser.add_argument("--native", action="store_true", help="Use the native location control when available")
    parser.add_argument("--reverse-geocode", action="store_true")
    parser.add_argument("--skip-confirmation", action="store_true")
    parser.add_argument(
        "--require",
        action="append",
        default=[],
        choices=[f.name.lower() for f in LocationRequiredFields if f.name and f is not LocationRequiredFields.NONE],
        help="Required address field (repeatable)",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser


async def run(args: argparse.Namespace) -> None:
    options = LocationOptions.NONE
    if args.native:
        options |= LocationOptions.USE_NATIVE_CONTROL
    if args.reverse_geocode:
        options |= LocationOptions.REVERSE_GEOCODE
    if args.skip_confirmation:
        options |= LocationOptions.SKIP_FINAL_CONFIRMATION
    required = LocationRequiredFields.NONE
    for name in args.require:
        required |= LocationRequiredFields[name.upper()]

    stack = DialogStack()
    await stack.begin(LocationDialog(args.channel, args.prompt, options, required))
    while not stack.completed:
        for text in stack.outbox:
            print(f"bot> {text}")
        stack.outbox.clear()
        line = input("you> ").strip()
        await stack.send(_parse_message(line))

    for text in stack.outbox:
        print(f"bot> {text}")
    place = stack.result
    print(json.dumps(place.to_dict() if place else None, indent=2))


def main() -> None:
    args = _build_parser().parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
