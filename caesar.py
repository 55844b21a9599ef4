#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
caesar.py — Caesar cipher encrypt/decrypt with a getopt-style CLI.
Usage:
  python3 caesar.py -e 3 "hello world"
  python3 caesar.py -d 3 "khoor zruog"
  echo "hello world" | python3 caesar.py -e 3
Notes:
- Only ASCII letters [A-Z][a-z] are shifted; every other byte passes through
  untouched (digits, punctuation, whitespace, bytes >= 0x80).
- Without a msg argument stdin is streamed to stdout until EOF.
- A trailing newline is added only when stdout is a terminal, so piped output
  has exactly as many bytes as the input.
"""
import os
import re
import sys
import argparse
from typing import BinaryIO, Iterable, NamedTuple, Optional

ALPHABET_SIZE = 26
# strtol() limit for the key
LONG_MAX = sys.maxsize
LONG_MIN = -LONG_MAX - 1
CHUNK_SIZE = 4096

ENCRYPT = "encrypt"
DECRYPT = "decrypt"

# what strtol() accepts in base 10: leading C whitespace, one sign, digits
KEY_RE = re.compile(r"[ \t\n\r\f\v]*[+-]?[0-9]+")

USAGE = "%(prog)s [-h] (-d key | -e key) [msg]"
DESCRIPTION = (
    "Encrypt or decrypt the supplied message with a given key. The\n"
    "key should be a positive integer. This integer is used to either\n"
    "right-shift (encrypt) or left-shift (decrypt) the ASCII characters\n"
    "in the message.\n\n"
    "Any non-ASCII characters in the message are left unchanged. The\n"
    "encrypted or decrypted message is written to standard output. When\n"
    "msg is omitted the message is read from standard input."
)


# ---------- transform ----------

def shift_char(shift: int, base: str, c: str) -> str:
    """Rotate ``c`` inside the 26 letters starting at ``base``."""
    # fold negative shifts into [0, 26) before they reach %
    shift = ((shift % ALPHABET_SIZE) + ALPHABET_SIZE) % ALPHABET_SIZE
    offset = (ord(c) - ord(base) + shift) % ALPHABET_SIZE
    return chr(ord(base) + offset)


def crypt_char(shift: int, c: str) -> str:
    if "A" <= c <= "Z":
        return shift_char(shift, "A", c)
    if "a" <= c <= "z":
        return shift_char(shift, "a", c)
    return c


def crypt_str(shift: int, text: str) -> str:
    return "".join(crypt_char(shift, c) for c in text)


def byte_table(shift: int) -> bytes:
    """256-entry table for bytes.translate(), built from crypt_char()."""
    return bytes(ord(crypt_char(shift, chr(b))) for b in range(256))


def crypt_bytes(shift: int, data: bytes) -> bytes:
    return bytes(data).translate(byte_table(shift))


def encrypt(shift: int, text: str) -> str:
    return crypt_str(shift, text)


def decrypt(shift: int, text: str) -> str:
    # decryption is encryption with the sign flipped
    return crypt_str(-shift, text)


# ---------- argument / mode resolver ----------

class InvalidKey(ValueError):
    """Key text rejected by parse_positive_long().

    ``reason`` is one of ``"format"``, ``"overflow"`` or ``"negative"``.
    """

    def __init__(self, text: str, reason: str):
        super().__init__(f"invalid key {text!r} ({reason})")
        self.text = text
        self.reason = reason


def parse_positive_long(text: str) -> int:
    """Parse a base 10 key the way strtol() does, then require it to be >= 0."""
    if not KEY_RE.fullmatch(text):
        raise InvalidKey(text, "format")
    value = int(text)
    if not LONG_MIN <= value <= LONG_MAX:
        raise InvalidKey(text, "overflow")
    if value < 0:
        raise InvalidKey(text, "negative")
    return value


class Request(NamedTuple):
    mode: str
    key: int
    message: Optional[str]  # None -> read stdin

    @property
    def shift(self) -> int:
        return self.key if self.mode == ENCRYPT else -self.key


class CaesarArgumentParser(argparse.ArgumentParser):
    """Reports every problem as ``<prog>: <message>`` plus the full help on
    stderr and exits with status 1."""

    def error(self, message):
        self.exit_with_usage(message)

    def exit_with_usage(self, message: Optional[str] = None):
        if message:
            self._print_message(f"{self.prog}: {message}\n", sys.stderr)
        self.print_help(sys.stderr)
        self.exit(1)


class _HelpAction(argparse.Action):
    """-h prints the full usage and exits 1, the status of every usage error."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS,
                 default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings=option_strings, dest=dest,
                         default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.exit_with_usage()


class _ModeAction(argparse.Action):
    """-e/-d: record the mode in ``const`` and keep the raw key text."""

    def __call__(self, parser, namespace, values, option_string=None):
        if namespace.mode is not None:
            parser.error("only -d or -e may be specified")
        namespace.mode = self.const
        namespace.key = values


def build_parser(prog: Optional[str] = None) -> CaesarArgumentParser:
    parser = CaesarArgumentParser(
        prog=prog,
        usage=USAGE,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("-h", action=_HelpAction, help="Display program usage")
    parser.add_argument("-d", action=_ModeAction, dest="key", const=DECRYPT,
                        metavar="key", help="Decrypt message using the given key")
    parser.add_argument("-e", action=_ModeAction, dest="key", const=ENCRYPT,
                        metavar="key", help="Encrypt message using the given key")
    parser.add_argument("msg", nargs="?",
                        help="ASCII text to encrypt or decrypt (default: stdin)")
    parser.set_defaults(mode=None, key=None)
    return parser


def resolve_args(argv: Iterable[str],
                 parser: Optional[CaesarArgumentParser] = None) -> Request:
    """Turn argv into a validated Request, or exit 1 with the usage text."""
    if parser is None:
        parser = build_parser()
    args = parser.parse_args(list(argv))
    if args.mode is None:
        parser.error("either -d or -e are required")
    try:
        key = parse_positive_long(args.key)
    except InvalidKey:
        parser.error("key must be a positive base 10 integer")
    return Request(args.mode, key, args.msg)


# ---------- output driver ----------

def crypt_message(shift: int, data: bytes, out: BinaryIO) -> int:
    """Bounded mode: crypt the argv message in one go. Returns bytes written."""
    out.write(crypt_bytes(shift, data))
    return len(data)


def crypt_stream(shift: int, src: BinaryIO, out: BinaryIO,
                 chunk_size: int = CHUNK_SIZE) -> int:
    """Streaming mode: crypt ``src`` until EOF, writing each chunk as soon as
    it is read. Returns bytes written."""
    table = byte_table(shift)
    # read1() returns whatever is available instead of waiting for a full chunk
    read = getattr(src, "read1", src.read)
    total = 0
    while True:
        chunk = read(chunk_size)
        if not chunk:
            break
        out.write(chunk.translate(table))
        out.flush()
        total += len(chunk)
    return total


def main(argv: Optional[Iterable[str]] = None,
         stdin: Optional[BinaryIO] = None,
         stdout: Optional[BinaryIO] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    request = resolve_args(argv, parser)
    out = stdout if stdout is not None else sys.stdout.buffer

    try:
        if request.message is not None:
            # back to the raw argv bytes, undecodable ones included
            data = os.fsencode(request.message)
            try:
                crypt_message(request.shift, data, out)
            except MemoryError:
                print(f"{parser.prog}: cannot allocate {len(data)} bytes "
                      f"for output message. aborting.", file=sys.stderr)
                return 2
        else:
            src = stdin if stdin is not None else sys.stdin.buffer
            crypt_stream(request.shift, src, out)
        if out.isatty():
            out.write(b"\n")
    finally:
        out.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
