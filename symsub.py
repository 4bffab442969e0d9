#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
symsub.py -- Self-describing symbol-substitution text compressor.

The compressor rewrites a text buffer into a shorter stream that carries
its own dictionary.  Every structural symbol in the stream is drawn from a
pool of characters that never occur in the input, so the decoder can tell
structure from data without any side information.

### Pipeline

Encoding runs four stages:

1. **Alphabet allocation** – the candidate symbols absent from the input
   are collected.  The last one becomes ``ctrl_char``, the one before it
   ``repeat_char`` and the remainder is the key pool (consumed from the end).
2. **Run-length collapse** – runs of three or more identical characters
   become ``repeat_char count repeat_char char``.
3. **Grammar substitution** – a greedy loop picks the heaviest repeated
   substring (``length × occurrences``), collapses adjacent repeats of it
   into ``ctrl_char count ctrl_char key ctrl_char`` and replaces the
   remaining occurrences by a freshly minted key, as long as the resulting
   stream is strictly shorter.
4. **Serialization** – header, dictionary records and payload are joined
   into one string.

Decoding parses the header and dictionary with a small state machine
(expanding substring-run escapes inline), replays the dictionary in reverse
insertion order and finally expands the character runs.

### Stream format

::

    <repeat_char> <ctrl_char>
      { <ctrl_char> <key> '=' <value> <ctrl_char> }*
    <payload>

An empty dictionary gives a two character header; a non-empty one reads
``repeat_char ctrl_char ctrl_char`` because the first record opens with
``ctrl_char``.

The scan in ``select_best_group`` is cubic in the buffer length.  This is
the defined behaviour, not an accident; swap the function for a suffix
array based one if large inputs matter.
"""

from __future__ import annotations

import re
import string
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

# Progress switch (set by the CLI)
G_VERBOSE: bool = False

def _print_trace(msg: str) -> None:
    """Print an engine trace line when ``--verbose`` is on."""
    if not G_VERBOSE:
        return
    print(f"[symsub] {msg}", flush=True)

###############################################################################
# Constants and errors
###############################################################################

DEFAULT_CANDIDATES: str = string.ascii_lowercase + string.ascii_uppercase + string.punctuation

MIN_CHAR_RUN: int = 3    # shortest character run written as an escape
MIN_GROUP_LEN: int = 2   # shortest substring considered by the grammar
RECORD_OVERHEAD: int = 4 # ctrl, key, '=', ctrl around every dictionary value
KEY_SEP: str = "="

class AlphabetExhausted(ValueError):
    """Raised when no reserved symbol is left for a control symbol or key."""

class MalformedStream(ValueError):
    """Raised when a stream violates the header/dictionary/payload grammar."""

###############################################################################
# Alphabet allocation
###############################################################################

def find_free_chars(text: str, candidates: str = DEFAULT_CANDIDATES) -> List[str]:
    """Return the candidates that do not occur in ``text``, in candidate order."""
    used = set(text)
    free: List[str] = []
    for c in candidates:
        # digits carry run counts and KEY_SEP splits records
        if c in string.digits or c == KEY_SEP:
            continue
        if c not in used and c not in free:
            free.append(c)
    return free

class Alphabet:
    """Reserved symbols for one encode pass.

    ``ctrl_char`` and ``repeat_char`` are popped from the end of the free
    list on construction.  Keys are handed out from the end as well, so the
    most recently available symbol is minted first.  ``next_key`` only peeks;
    ``key_used`` consumes the peeked key.
    """
    __slots__ = ("ctrl_char", "repeat_char", "free_chars")

    def __init__(self, text: str, candidates: str = DEFAULT_CANDIDATES) -> None:
        free = find_free_chars(text, candidates)
        if len(free) < 2:
            raise AlphabetExhausted(
                f"need 2 unused symbols for control characters, found {len(free)}")
        self.ctrl_char = free.pop()
        self.repeat_char = free.pop()
        self.free_chars = free

    @property
    def remaining(self) -> int:
        return len(self.free_chars)

    def next_key(self) -> str:
        if not self.free_chars:
            raise AlphabetExhausted("key pool exhausted; input needs a larger alphabet")
        return self.free_chars[-1]

    def key_used(self) -> str:
        if not self.free_chars:
            raise AlphabetExhausted("key pool exhausted; input needs a larger alphabet")
        return self.free_chars.pop()

def read_header(stream: str) -> Tuple[str, str]:
    """Return ``(repeat_char, ctrl_char)`` from the first two stream symbols."""
    if len(stream) < 2:
        raise MalformedStream("stream shorter than its two-symbol header")
    repeat_char, ctrl_char = stream[0], stream[1]
    if repeat_char == ctrl_char:
        raise MalformedStream("repeat and control symbols must differ")
    return repeat_char, ctrl_char

def _parse_count(digits: str) -> int:
    # str.isdigit() accepts superscripts and other non-ASCII digits
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise MalformedStream(f"invalid repeat count {digits!r}")
    return int(digits)

###############################################################################
# Run-length stage
###############################################################################

def collapse_runs(text: str, repeat_char: str) -> str:
    """Replace each run of ``MIN_CHAR_RUN`` or more equal characters by an escape.

    A run of ``k`` copies of ``c`` becomes ``repeat_char + str(k) +
    repeat_char + c``.  Shorter runs are copied as is.  Scanning resumes
    right after the run, never inside the escape that replaced it.
    """
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        j = i + 1
        while j < n and text[j] == text[i]:
            j += 1
        run = j - i
        if run >= MIN_CHAR_RUN:
            out.append(f"{repeat_char}{run}{repeat_char}{text[i]}")
        else:
            out.append(text[i:j])
        i = j
    return "".join(out)

def expand_runs(text: str, repeat_char: str) -> str:
    """Inverse of ``collapse_runs``.

    Raises ``MalformedStream`` on an unterminated count, a non-decimal count
    or an escape with no run character after it.
    """
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c != repeat_char:
            out.append(c)
            i += 1
            continue
        end = text.find(repeat_char, i + 1)
        if end == -1:
            raise MalformedStream("unterminated character-run count")
        count = _parse_count(text[i + 1:end])
        if end + 1 >= n:
            raise MalformedStream("character-run escape without a run character")
        out.append(text[end + 1] * count)
        i = end + 2
    return "".join(out)

###############################################################################
# Grammar substitution
###############################################################################

@dataclass
class Group:
    """Scoring record for one candidate substring."""
    data: str
    occurrences: int

    @property
    def weight(self) -> int:
        return len(self.data) * self.occurrences

@dataclass(frozen=True)
class Pair:
    key: str
    value: str

def _escape_pattern(ctrl_char: str) -> "re.Pattern[str]":
    c = re.escape(ctrl_char)
    return re.compile(f"({c}[0-9]+{c}.{c})", re.DOTALL)

def split_segments(buffer: str, ctrl_char: str) -> List[Tuple[bool, str]]:
    """Split ``buffer`` into ``(is_escape, text)`` pieces.

    Text segments never contain ``ctrl_char``; every ``ctrl_char`` in the
    working buffer belongs to a substring-run escape.  Empty text segments
    are dropped.
    """
    pieces: List[Tuple[bool, str]] = []
    for idx, part in enumerate(_escape_pattern(ctrl_char).split(buffer)):
        if not part:
            continue
        # re.split puts captured separators at odd indices
        pieces.append((idx % 2 == 1, part))
    return pieces

def count_occurrences(buffer: str, target: str, ctrl_char: str) -> int:
    """Non-overlapping occurrences of ``target`` outside run escapes."""
    return sum(part.count(target)
               for is_escape, part in split_segments(buffer, ctrl_char)
               if not is_escape)

def select_best_group(buffer: str, ctrl_char: str) -> Optional[Group]:
    """Pick the heaviest repeated substring of ``buffer``.

    The window starts at a quarter of the buffer length.  Its start and end
    move right together one character at a time; when the end reaches the
    buffer length the start goes back to 0 and the window shrinks by one.
    The scan stops once the window would be shorter than ``MIN_GROUP_LEN``.
    Only slices free of ``ctrl_char`` and occurring more than once qualify;
    the first slice with the highest ``length × occurrences`` wins.
    """
    n = len(buffer)
    if n < MIN_GROUP_LEN:
        return None
    texts = [part for is_escape, part in split_segments(buffer, ctrl_char)
             if not is_escape]
    best: Optional[Group] = None
    seen: Dict[str, int] = {}
    width = min(n, max(MIN_GROUP_LEN, n // 4))
    start = 0
    while width >= MIN_GROUP_LEN:
        end = start + width
        piece = buffer[start:end]
        if ctrl_char not in piece and piece not in seen:
            seen[piece] = sum(t.count(piece) for t in texts)
            occ = seen[piece]
            if occ > 1 and (best is None or len(piece) * occ > best.weight):
                best = Group(piece, occ)
        if end == n:
            start = 0
            width -= 1
        else:
            start += 1
    return best

def _find_runs(segment: str, data: str) -> List[Tuple[int, int]]:
    """Return ``(start, count)`` for each run of adjacent occurrences of ``data``.

    Occurrences are matched leftmost first without overlap, the same way
    ``str.count`` and ``str.replace`` do.
    """
    runs: List[Tuple[int, int]] = []
    step = len(data)
    i = segment.find(data)
    while i != -1:
        if runs and runs[-1][0] + runs[-1][1] * step == i:
            first, count = runs[-1]
            runs[-1] = (first, count + 1)
        else:
            runs.append((i, 1))
        i = segment.find(data, i + step)
    return runs

def _run_escape_len(count: int) -> int:
    # ctrl, digits, ctrl, key, ctrl
    return len(str(count)) + 3

def _escapes_run(count: int) -> bool:
    return count > 1 and _run_escape_len(count) < count

def projected_length(buffer: str, data: str, ctrl_char: str) -> int:
    """Length of ``buffer`` after substituting ``data`` by a one-symbol key.

    Computed without allocating the key, so a rejected candidate never
    touches the key pool.
    """
    total = 0
    for is_escape, part in split_segments(buffer, ctrl_char):
        total += len(part)
        if is_escape:
            continue
        for _first, count in _find_runs(part, data):
            total -= count * len(data)
            total += _run_escape_len(count) if _escapes_run(count) else count
    return total

def substitute_group(buffer: str, data: str, key: str, ctrl_char: str) -> str:
    """Replace every occurrence of ``data`` outside run escapes by ``key``.

    Adjacent occurrences are first grouped into runs; a run becomes
    ``ctrl count ctrl key ctrl`` when that is shorter than repeating the key.
    Existing escapes are copied unchanged.
    """
    out: List[str] = []
    step = len(data)
    for is_escape, part in split_segments(buffer, ctrl_char):
        if is_escape:
            out.append(part)
            continue
        pos = 0
        for first, count in _find_runs(part, data):
            out.append(part[pos:first])
            if _escapes_run(count):
                out.append(f"{ctrl_char}{count}{ctrl_char}{key}{ctrl_char}")
            else:
                out.append(key * count)
            pos = first + count * step
        out.append(part[pos:])
    return "".join(out)

def grammar_step(buffer: str, alphabet: Alphabet,
                 pairs: List[Pair]) -> Tuple[str, bool]:
    """Run one substitution round.

    Returns the new buffer and whether a substitution was committed.  A
    committed round appends one ``Pair`` to ``pairs`` and consumes one key;
    ``AlphabetExhausted`` escapes when the round is admitted but no key is
    left.
    """
    ctrl = alphabet.ctrl_char
    group = select_best_group(buffer, ctrl)
    if group is None:
        return buffer, False
    cost = projected_length(buffer, group.data, ctrl) + len(group.data) + RECORD_OVERHEAD
    if cost >= len(buffer):
        _print_trace(f"reject {group.data!r} x{group.occurrences} "
                     f"(cost {cost} >= {len(buffer)})")
        return buffer, False
    key = alphabet.next_key()
    new_buffer = substitute_group(buffer, group.data, key, ctrl)
    alphabet.key_used()
    pairs.append(Pair(key, group.data))
    _print_trace(f"{key!r} = {group.data!r} x{group.occurrences} "
                 f"weight={group.weight} len {len(buffer)} -> {len(new_buffer)}")
    return new_buffer, True

def build_grammar(buffer: str, alphabet: Alphabet) -> Tuple[str, List[Pair]]:
    """Substitute greedily until no admitted group remains."""
    pairs: List[Pair] = []
    applied = True
    while applied:
        buffer, applied = grammar_step(buffer, alphabet, pairs)
    return buffer, pairs

def replay_dictionary(payload: str, pairs: List[Pair]) -> str:
    """Undo the grammar by expanding keys in reverse insertion order.

    A later pair's value may contain an earlier key, so the last pair has to
    be expanded first.
    """
    out = payload
    for pair in reversed(pairs):
        if pair.key in pair.value:
            raise MalformedStream(f"dictionary value for {pair.key!r} contains its own key")
        while pair.key in out:
            out = out.replace(pair.key, pair.value)
    return out

###############################################################################
# Stream codec
###############################################################################

class ParseState(Enum):
    IDLE = "idle"
    DEFINING = "defining"
    MAPPING = "mapping"
    REPEAT = "repeat"

class ParsedStream(NamedTuple):
    repeat_char: str
    ctrl_char: str
    pairs: List[Pair]
    payload: str

def serialize_stream(repeat_char: str, ctrl_char: str,
                     pairs: List[Pair], payload: str) -> str:
    out = [repeat_char, ctrl_char]
    for pair in pairs:
        out.append(f"{ctrl_char}{pair.key}{KEY_SEP}{pair.value}{ctrl_char}")
    out.append(payload)
    return "".join(out)

def parse_stream(stream: str) -> ParsedStream:
    """Split a stream into its control symbols, dictionary and payload.

    ``ctrl_char`` opens both dictionary records and substring-run escapes.
    The two are told apart by what closes the DEFINING state: ``=`` turns it
    into a record (MAPPING), a second ``ctrl_char`` after a decimal count
    into a run (REPEAT).  Runs are expanded inline into the payload.
    """
    repeat_char, ctrl_char = read_header(stream)
    pairs: List[Pair] = []
    keys = set()
    payload: List[str] = []
    state = ParseState.IDLE
    buf: List[str] = []
    key = ""
    count = 0
    for pos in range(2, len(stream)):
        c = stream[pos]
        if state is ParseState.IDLE:
            if c == ctrl_char:
                state = ParseState.DEFINING
                buf = []
            else:
                payload.append(c)
        elif state is ParseState.DEFINING:
            if c == KEY_SEP:
                key = "".join(buf)
                if len(key) != 1:
                    raise MalformedStream(f"dictionary key must be one symbol at {pos}, got {key!r}")
                if payload:
                    raise MalformedStream(f"dictionary record after payload at {pos}")
                if key in keys or key == repeat_char:
                    raise MalformedStream(f"invalid or duplicate dictionary key {key!r}")
                state = ParseState.MAPPING
                buf = []
            elif c == ctrl_char:
                count = _parse_count("".join(buf))
                state = ParseState.REPEAT
                buf = []
            else:
                buf.append(c)
        elif state is ParseState.MAPPING:
            if c == ctrl_char:
                if not buf:
                    raise MalformedStream(f"empty dictionary value for {key!r}")
                pairs.append(Pair(key, "".join(buf)))
                keys.add(key)
                state = ParseState.IDLE
            else:
                buf.append(c)
        else:
            if c == ctrl_char:
                if not buf:
                    raise MalformedStream(f"empty substring-run body at {pos}")
                payload.append("".join(buf) * count)
                state = ParseState.IDLE
            else:
                buf.append(c)
    if state is not ParseState.IDLE:
        raise MalformedStream(f"stream ends inside a {state.value} section")
    return ParsedStream(repeat_char, ctrl_char, pairs, "".join(payload))

###############################################################################
# Public API
###############################################################################

def encode(text: str, candidates: str = DEFAULT_CANDIDATES) -> Tuple[str, Dict[str, object]]:
    """Compress ``text`` and return the stream plus metadata.

    The metadata records the control symbols, the dictionary pairs, the
    payload length and how many keys were left unused.  It is meant for
    inspection; the stream alone is enough to decode.
    """
    alphabet = Alphabet(text, candidates)
    buffer = collapse_runs(text, alphabet.repeat_char)
    _print_trace(f"ctrl={alphabet.ctrl_char!r} repeat={alphabet.repeat_char!r} "
                 f"keys={alphabet.remaining} runs {len(text)} -> {len(buffer)}")
    payload, pairs = build_grammar(buffer, alphabet)
    stream = serialize_stream(alphabet.repeat_char, alphabet.ctrl_char, pairs, payload)
    meta: Dict[str, object] = {
        "ctrl_char": alphabet.ctrl_char,
        "repeat_char": alphabet.repeat_char,
        "pairs": pairs,
        "payload_len": len(payload),
        "keys_left": alphabet.remaining,
    }
    return stream, meta

def compress(text: str, candidates: str = DEFAULT_CANDIDATES) -> str:
    """Compress ``text`` into a self-describing stream.

    Raises ``AlphabetExhausted`` when the input leaves too few unused
    candidate symbols.
    """
    stream, _meta = encode(text, candidates)
    return stream

def decompress(stream: str) -> str:
    """Inverse of ``compress``.  Raises ``MalformedStream`` on bad input."""
    parsed = parse_stream(stream)
    text = replay_dictionary(parsed.payload, parsed.pairs)
    return expand_runs(text, parsed.repeat_char)

def describe_stream(stream: str) -> str:
    """Human readable dump of a stream's header and dictionary."""
    parsed = parse_stream(stream)
    lines = [
        f"repeat_char: {parsed.repeat_char!r}",
        f"ctrl_char:   {parsed.ctrl_char!r}",
        f"pairs:       {len(parsed.pairs)}",
    ]
    for i, pair in enumerate(parsed.pairs):
        lines.append(f"  [{i}] {pair.key!r} = {pair.value!r}")
    lines.append(f"payload:     {len(parsed.payload)} symbols")
    return "\n".join(lines)

###############################################################################
# CLI
###############################################################################

def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()

def _write_text(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)

def main(argv: Optional[List[str]] = None) -> int:
    import argparse, os
    global G_VERBOSE
    parser = argparse.ArgumentParser(description="Self-describing symbol-substitution compressor")
    parser.add_argument('-i', '--input', nargs='?', help='Input file to compress or decompress')
    parser.add_argument('-d', '--decompress', action='store_true', help='Decompress')
    parser.add_argument('-o', '--output', help='Output file')
    parser.add_argument('--dump', action='store_true',
                        help='Print the header and dictionary of a compressed file')
    parser.add_argument('--alphabet', default=DEFAULT_CANDIDATES,
                        help='Candidate symbols for control characters and keys')
    parser.add_argument('--verbose', action='store_true', help='Trace every substitution')
    parser.add_argument('--experiment', action='store_true',
                        help='Run the benchmark against zlib/bz2/lzma')
    args = parser.parse_args(argv)

    G_VERBOSE = bool(args.verbose)

    if args.experiment:
        from benchmark_compare import run_benchmarks
        run_benchmarks()
        return 0

    if not args.input:
        parser.print_help()
        return 0

    try:
        data = _read_text(args.input)
        if args.dump:
            print(describe_stream(data))
        elif args.decompress:
            out = decompress(data)
            outname = args.output or (os.path.splitext(args.input)[0] + '.out')
            _write_text(outname, out)
            print(f'Decompressed {len(data)} symbols to {len(out)} symbols → {outname}')
        else:
            blob = compress(data, candidates=args.alphabet)
            outname = args.output or (args.input + '.sym')
            _write_text(outname, blob)
            ratio = len(blob) / len(data) if data else 1.0
            print(f'Compressed {len(data)} symbols to {len(blob)} symbols '
                  f'(ratio {ratio:.3f}) → {outname}')
    except (AlphabetExhausted, MalformedStream) as e:
        print(f"symsub: {e}", file=sys.stderr)
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(main())
